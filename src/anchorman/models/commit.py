"""Data models for git commit information."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class CommitInfo(BaseModel):
    """Metadata for a single git commit as read from a working copy."""

    hash: str = Field(..., description="Full commit SHA hash")
    message: str = Field(..., description="Commit subject line")
    author: str = Field(..., description="Author as 'Name <email>'")
    branch: str = Field(..., description="Branch the commit was seen on")
    files_changed: List[str] = Field(default_factory=list, description="Changed paths, in git order")
    committed_at: datetime = Field(..., description="Commit timestamp (timezone-aware)")

    @property
    def short_hash(self) -> str:
        """First 8 characters of the hash."""
        return self.hash[:8]

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "hash": "abc123def4567890abc123def4567890abc123de",
                "message": "Fix authentication bug",
                "author": "Jane Doe <jane@example.com>",
                "branch": "main",
                "files_changed": ["src/auth.py", "tests/test_auth.py"],
                "committed_at": "2024-01-15T10:30:00+00:00",
            }
        }
