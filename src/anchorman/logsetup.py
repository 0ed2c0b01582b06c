"""structlog configuration and the append-only error log used by git hooks."""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog for CLI use.

    Args:
        verbose: Emit debug events instead of warnings and errors only
    """
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


class ErrorLog:
    """Append-only, one-line-per-failure log for the non-interactive hook path."""

    def __init__(self, path: Path, source: str = "ingest") -> None:
        self.path = Path(path)
        self.source = source

    def record(self, error: BaseException, **context: Any) -> None:
        """Append one line describing ``error``.

        Failures to write are dropped so the triggering git operation is
        never affected.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as fh:
                logger = structlog.wrap_logger(
                    structlog.WriteLogger(fh),
                    processors=[
                        structlog.processors.TimeStamper(fmt="iso", utc=True),
                        structlog.processors.KeyValueRenderer(
                            key_order=["timestamp", "source", "event", "error"]
                        ),
                    ],
                    wrapper_class=structlog.BoundLogger,
                )
                logger.error(
                    f"{self.source}_failed",
                    source=self.source,
                    error=f"{type(error).__name__}: {error}",
                    **context,
                )
        except OSError:
            pass

    def read_lines(self) -> list:
        if not self.path.exists():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()
