"""Configuration models."""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Type, Union

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

PathLike = Union[str, os.PathLike]

DEFAULT_CONFIG = """\
# Anchorman configuration. ANCHORMAN_* environment variables take precedence.

# Summarization agent: codex or claude
default_agent = "codex"

# Directory for rendered reports
reports_output = "~/Documents/reports"

# Roots whose repositories are recorded by the git hooks
scan_paths = ["~/Projects"]
"""


def default_home() -> Path:
    """Anchorman's state directory, overridable with ANCHORMAN_HOME."""
    override = os.getenv("ANCHORMAN_HOME")
    if override:
        return Path(override).expanduser().absolute()
    return Path.home() / ".anchorman"


def _canonical(path: PathLike) -> str:
    # Lexical only: the repository may no longer exist on disk.
    return os.path.normpath(os.path.abspath(os.path.expanduser(os.fspath(path))))


def is_path_tracked(repo_path: PathLike, scan_paths: Iterable[PathLike]) -> bool:
    """Check whether a repository path equals or lies below a scan path.

    Args:
        repo_path: Repository root path
        scan_paths: Configured tracked roots

    Returns:
        True if the path is tracked
    """
    target = _canonical(repo_path)
    for scan_path in scan_paths:
        root = _canonical(scan_path)
        try:
            rel = os.path.relpath(target, root)
        except ValueError:
            # Different drives on Windows
            continue
        if rel == os.curdir:
            return True
        first = rel.split(os.sep, 1)[0]
        if first != os.pardir:
            return True
    return False


class Settings(BaseSettings):
    """Application settings.

    Loaded from init arguments, then ANCHORMAN_* environment variables,
    then ``<home>/config.toml``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANCHORMAN_",
        case_sensitive=False,
        extra="ignore",
    )

    scan_paths: List[Path] = Field(
        default_factory=lambda: [Path.home() / "Projects"],
        description="Roots whose repositories are tracked by the git hooks",
    )
    default_agent: str = Field("codex", description="Summarization agent: codex or claude")
    reports_output: Path = Field(
        default_factory=lambda: Path.home() / "Documents" / "reports",
        description="Directory for rendered reports",
    )
    agent_timeout: Optional[float] = Field(
        None, description="Seconds before an agent invocation is abandoned (None = no limit)"
    )
    home: Path = Field(default_factory=default_home, description="Anchorman state directory")
    hooks_dir: Path = Field(
        default_factory=lambda: Path.home() / ".config" / "git" / "hooks",
        description="Global git hooks directory managed by Anchorman",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # An explicit home also relocates the config file.
        home = getattr(init_settings, "init_kwargs", {}).get("home")
        config_home = Path(home).expanduser() if home else default_home()
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_home / "config.toml"),
        )

    @field_validator("scan_paths", mode="after")
    @classmethod
    def _expand_scan_paths(cls, value: List[Path]) -> List[Path]:
        return [p.expanduser() for p in value]

    @field_validator("reports_output", "home", "hooks_dir", mode="after")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def database_path(self) -> Path:
        return self.home / "db" / "anchorman.sqlite"

    @property
    def error_log_path(self) -> Path:
        return self.home / "errors.log"

    @property
    def hook_state_path(self) -> Path:
        return self.home / "hooks.json"

    def is_path_tracked(self, repo_path: PathLike) -> bool:
        """Check a repository path against the configured scan paths."""
        return is_path_tracked(repo_path, self.scan_paths)

    def ensure_directories(self) -> None:
        """Create the state and database directories.

        A commented ``config.toml`` with the default values is written on
        first run; an existing file is never touched.
        """
        (self.home / "db").mkdir(parents=True, exist_ok=True)
        if not self.config_path.exists():
            self.config_path.write_text(DEFAULT_CONFIG, encoding="utf-8")
