"""Relational store configuration."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from anchorman.models.config import Settings, default_home


def _default_url() -> str:
    return f"sqlite:///{default_home() / 'db' / 'anchorman.sqlite'}"


class DatabaseConfig(BaseSettings):
    """Configuration for the embedded SQLite store.

    Settings can be loaded from environment variables prefixed with
    ANCHORMAN_DB_ (e.g., ANCHORMAN_DB_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="ANCHORMAN_DB_",
        extra="ignore",
    )

    url: str = Field(default_factory=_default_url, description="SQLAlchemy database URL")

    echo: bool = Field(default=False, description="Log every SQL statement")

    # Concurrent hook invocations wait on the SQLite write lock this long
    busy_timeout: float = Field(
        default=5.0,
        description="Seconds to wait for a locked database",
    )

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "DatabaseConfig":
        """Build a configuration pointing at the settings' database path."""
        return cls(url=f"sqlite:///{settings.database_path}", **overrides)

    @property
    def database_file(self) -> Optional[Path]:
        """Filesystem path of the database, or None for in-memory URLs."""
        database = make_url(self.url).database
        if not database or database == ":memory:":
            return None
        return Path(database)

    def ensure_parent_dir(self) -> None:
        """Ensure the directory holding the database file exists."""
        if self.database_file is not None:
            self.database_file.parent.mkdir(parents=True, exist_ok=True)
