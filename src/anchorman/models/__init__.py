"""Data models for commit tracking and task derivation."""

from anchorman.models.commit import CommitInfo
from anchorman.models.config import Settings, is_path_tracked
from anchorman.models.task import TaskResult

__all__ = [
    "CommitInfo",
    "TaskResult",
    "Settings",
    "is_path_tracked",
]
