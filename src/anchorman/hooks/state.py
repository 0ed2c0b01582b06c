"""Install-time record of the global hooks configuration.

Stored in ``<home>/hooks.json`` so that uninstall can put back exactly
what install replaced.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class HookState(BaseModel):
    """What the global hooks setup looked like before install."""

    version: str = Field("1", description="State file format version")
    previous_hooks_path: Optional[str] = Field(
        None, description="core.hooksPath before install (None = unset)"
    )
    migrated: List[str] = Field(
        default_factory=list,
        description="Hook names copied in from the previous hooks path",
    )
    installed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HookStateStore:
    """Loads and atomically saves the hook state file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[HookState]:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return HookState(**json.load(f))

    def save(self, state: HookState) -> None:
        """Save using a temporary file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".hooks_", suffix=".json.tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.model_dump(mode="json"), f, indent=2)
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def delete(self) -> None:
        if self.path.exists():
            self.path.unlink()
