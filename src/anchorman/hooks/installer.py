"""Global git hook installation with chaining of pre-existing hooks."""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import structlog

from anchorman.errors import AnchormanError
from anchorman.hooks.gitconfig import GlobalGitConfig
from anchorman.hooks.state import HookState, HookStateStore

logger = structlog.get_logger(__name__)

MARKER = "Anchorman"
MANAGED_HOOKS = ("post-commit", "post-merge")
LEGACY_SUFFIX = ".legacy"
HOOKS_PATH_KEY = "core.hooksPath"

STATUS_INSTALLED = "installed"
STATUS_CHAINED = "chained"
STATUS_UNINSTALLED = "uninstalled"

HOOK_TEMPLATE = """#!/bin/bash
# {marker} {name} hook
# Chain existing hook if present
if [ -x "$0{legacy}" ]; then
    "$0{legacy}" "$@"
fi
# Record commit (silent, non-blocking)
{command} ingest >/dev/null 2>&1 &
"""


def _same_path(a: Union[str, Path], b: Union[str, Path]) -> bool:
    def norm(p):
        return os.path.normpath(os.path.abspath(os.path.expanduser(os.fspath(p))))

    return norm(a) == norm(b)


@dataclass
class InstallReport:
    hooks_dir: Path
    written: List[str] = field(default_factory=list)
    backed_up: List[str] = field(default_factory=list)
    migrated: List[str] = field(default_factory=list)
    previous_hooks_path: Optional[str] = None


@dataclass
class UninstallReport:
    hooks_dir: Path
    removed: List[str] = field(default_factory=list)
    restored: List[str] = field(default_factory=list)
    dir_removed: bool = False
    hooks_path_restored: Optional[str] = None
    hooks_path_cleared: bool = False


class HookInstaller:
    """Installs the managed post-commit and post-merge hooks globally.

    The hooks live in one directory referenced by the global
    ``core.hooksPath``. A hook that was already there is renamed to
    ``<name>.legacy`` and run first by the managed script; hooks from a
    previously configured hooks path are copied in the same way.
    """

    def __init__(
        self,
        hooks_dir: Path,
        state_file: Path,
        command: str = "anchorman",
        git_config: Optional[GlobalGitConfig] = None,
    ) -> None:
        self.hooks_dir = Path(hooks_dir).expanduser()
        self.state = HookStateStore(state_file)
        self.command = command
        self.git_config = git_config or GlobalGitConfig()

    def script(self, name: str) -> str:
        """Render the managed script for one hook name."""
        return HOOK_TEMPLATE.format(
            marker=MARKER, name=name, legacy=LEGACY_SUFFIX, command=self.command
        )

    @staticmethod
    def is_managed(hook_path: Path) -> bool:
        try:
            return MARKER.encode() in hook_path.read_bytes()
        except OSError:
            return False

    def install(self) -> InstallReport:
        """Install the managed hooks and point core.hooksPath at them.

        Returns:
            InstallReport describing what was written, backed up and migrated

        Raises:
            AnchormanError: If a hook would overwrite an existing .legacy file
        """
        report = InstallReport(hooks_dir=self.hooks_dir)
        self.hooks_dir.mkdir(parents=True, exist_ok=True)

        current = self.git_config.get(HOOKS_PATH_KEY)
        report.previous_hooks_path = current
        state = self.state.load()
        if state is None:
            state = HookState(previous_hooks_path=current)

        if current and not _same_path(current, self.hooks_dir):
            report.migrated = self._migrate(Path(current).expanduser())
            state.migrated = sorted(set(state.migrated) | set(report.migrated))
        self.state.save(state)

        for name in MANAGED_HOOKS:
            if self._write_hook(name):
                report.backed_up.append(name)
            report.written.append(name)

        self.git_config.set(HOOKS_PATH_KEY, str(self.hooks_dir))
        logger.info(
            "hooks_installed",
            hooks_dir=str(self.hooks_dir),
            backed_up=report.backed_up,
            migrated=report.migrated,
        )
        return report

    def _migrate(self, source_dir: Path) -> List[str]:
        if not source_dir.is_dir():
            logger.warning("previous_hooks_path_missing", path=str(source_dir))
            return []

        migrated = []
        for entry in sorted(source_dir.iterdir()):
            if not entry.is_file() or entry.name.endswith(LEGACY_SUFFIX):
                continue
            target = self.hooks_dir / f"{entry.name}{LEGACY_SUFFIX}"
            if target.exists():
                continue
            shutil.copyfile(entry, target)
            target.chmod(0o755)
            migrated.append(entry.name)
        return migrated

    def _write_hook(self, name: str) -> bool:
        hook = self.hooks_dir / name
        legacy = self.hooks_dir / f"{name}{LEGACY_SUFFIX}"
        backed_up = False

        if hook.exists() and not self.is_managed(hook):
            if legacy.exists():
                raise AnchormanError(
                    f"Cannot back up {hook}: {legacy} already exists"
                )
            hook.rename(legacy)
            backed_up = True

        hook.write_text(self.script(name), encoding="utf-8")
        hook.chmod(0o755)
        return backed_up

    def uninstall(self) -> UninstallReport:
        """Remove the managed hooks and restore the previous configuration."""
        report = UninstallReport(hooks_dir=self.hooks_dir)
        state = self.state.load()

        # Copies of a previous hooks path are dropped when that path is restored
        if state is not None and state.previous_hooks_path:
            for name in state.migrated:
                copy = self.hooks_dir / f"{name}{LEGACY_SUFFIX}"
                if copy.exists():
                    copy.unlink()

        for name in MANAGED_HOOKS:
            hook = self.hooks_dir / name
            legacy = self.hooks_dir / f"{name}{LEGACY_SUFFIX}"
            if not hook.exists() or not self.is_managed(hook):
                continue
            hook.unlink()
            report.removed.append(name)
            if legacy.exists():
                legacy.rename(hook)
                report.restored.append(name)

        if self.hooks_dir.is_dir() and not any(self.hooks_dir.iterdir()):
            self.hooks_dir.rmdir()
            report.dir_removed = True

        current = self.git_config.get(HOOKS_PATH_KEY)
        points_here = current is not None and _same_path(current, self.hooks_dir)

        if state is not None:
            if points_here:
                if state.previous_hooks_path:
                    self.git_config.set(HOOKS_PATH_KEY, state.previous_hooks_path)
                    report.hooks_path_restored = state.previous_hooks_path
                else:
                    self.git_config.unset(HOOKS_PATH_KEY)
                    report.hooks_path_cleared = True
            self.state.delete()
        elif report.dir_removed and points_here:
            self.git_config.unset(HOOKS_PATH_KEY)
            report.hooks_path_cleared = True

        logger.info(
            "hooks_uninstalled",
            hooks_dir=str(self.hooks_dir),
            removed=report.removed,
            restored=report.restored,
        )
        return report

    def status(self) -> Dict[str, str]:
        """Report installed, chained or uninstalled for each managed hook."""
        result = {}
        for name in MANAGED_HOOKS:
            hook = self.hooks_dir / name
            legacy = self.hooks_dir / f"{name}{LEGACY_SUFFIX}"
            if hook.exists() and self.is_managed(hook):
                result[name] = STATUS_CHAINED if legacy.exists() else STATUS_INSTALLED
            else:
                result[name] = STATUS_UNINSTALLED
        return result

    def configured_hooks_path(self) -> Optional[str]:
        return self.git_config.get(HOOKS_PATH_KEY)
