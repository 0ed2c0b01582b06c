"""Relational schema for companies, projects, repositories, commits and tasks.

List-valued columns and timestamps are encoded here and nowhere else:
callers always see Python lists and timezone-aware datetimes.
"""

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from anchorman.errors import SerializedFieldError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JSONList(TypeDecorator):
    """Ordered list stored as a JSON array in a TEXT column."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[List[Any]], dialect) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: Optional[str], dialect) -> Optional[List[Any]]:
        if value is None:
            return None
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError as e:
            raise SerializedFieldError(f"Malformed list column value: {value!r}") from e
        if not isinstance(decoded, list):
            raise SerializedFieldError(f"Expected a JSON array, got: {value!r}")
        return decoded


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as naive UTC.

    Naive values handed to the column are assumed to already be UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    projects: Mapped[List["Project"]] = relationship(back_populates="company", passive_deletes=True)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    company_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    company: Mapped[Optional[Company]] = relationship(back_populates="projects")
    repos: Mapped[List["Repo"]] = relationship(back_populates="project", passive_deletes=True)
    tasks: Mapped[List["Task"]] = relationship(back_populates="project", passive_deletes=True)

    @property
    def is_orphan(self) -> bool:
        return self.company_id is None


class Repo(Base):
    __tablename__ = "repos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    project_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    project: Mapped[Optional[Project]] = relationship(back_populates="repos")
    commits: Mapped[List["RawCommit"]] = relationship(back_populates="repo", passive_deletes=True)

    @property
    def is_orphan(self) -> bool:
        return self.project_id is None


class RawCommit(Base):
    __tablename__ = "raw_commits"
    __table_args__ = (UniqueConstraint("repo_id", "hash", name="uq_raw_commits_repo_hash"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hash: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(Text, nullable=False)
    branch: Mapped[str] = mapped_column(Text, nullable=False)
    files_changed: Mapped[List[str]] = mapped_column(JSONList, nullable=False, default=list)
    committed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    repo: Mapped[Repo] = relationship(back_populates="commits")

    @property
    def short_hash(self) -> str:
        return self.hash[:8]


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "estimated_hours >= 0.5 AND estimated_hours * 2 = CAST(estimated_hours * 2 AS INTEGER)",
            name="ck_tasks_estimated_hours_half_steps",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    source_commits: Mapped[List[int]] = mapped_column(JSONList, nullable=False, default=list)
    task_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    estimated_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)

    project: Mapped[Project] = relationship(back_populates="tasks")
