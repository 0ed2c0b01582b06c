"""SQLAlchemy engine and session management for the embedded store."""

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from anchorman.storage.config import DatabaseConfig
from anchorman.storage.schema import Base

logger = structlog.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Handle on the relational store.

    One instance is created per process and passed to every pipeline.
    Lifecycle is open -> use -> dispose; ``Database.open`` wraps that in a
    context manager.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None) -> None:
        """Initialize the database handle.

        Args:
            config: Database configuration. If None, loads from environment.
        """
        self.config = config or DatabaseConfig()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @classmethod
    @contextmanager
    def open(cls, config: Optional[DatabaseConfig] = None) -> Iterator["Database"]:
        """Open a database for the duration of a ``with`` block."""
        database = cls(config)
        try:
            database.engine  # create schema eagerly
            yield database
        finally:
            database.dispose()

    @property
    def engine(self) -> Engine:
        """Get or create the SQLAlchemy engine.

        Lazy initialization - the engine and schema are created on first access.
        """
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        self.config.ensure_parent_dir()
        engine = create_engine(
            self.config.url,
            echo=self.config.echo,
            connect_args={"timeout": self.config.busy_timeout},
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        Base.metadata.create_all(engine)
        logger.debug("database_opened", url=self.config.url)
        return engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
            )
        return self._session_factory

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Run one logical operation inside a single transaction.

        Commits when the block succeeds; rolls back and re-raises otherwise.

        Yields:
            SQLAlchemy Session
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close all pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
