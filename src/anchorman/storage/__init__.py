"""Storage layer for the embedded relational store."""

from anchorman.storage.config import DatabaseConfig
from anchorman.storage.database import Database
from anchorman.storage.repositories import (
    CommitRepository,
    CompanyRepository,
    CompanyWithStats,
    ProjectRepository,
    ProjectWithStats,
    RepoRepository,
    RepoWithStats,
    TaskRepository,
)
from anchorman.storage.schema import Base, Company, Project, RawCommit, Repo, Task

__all__ = [
    "Database",
    "DatabaseConfig",
    "Base",
    "Company",
    "Project",
    "Repo",
    "RawCommit",
    "Task",
    "CompanyRepository",
    "ProjectRepository",
    "RepoRepository",
    "CommitRepository",
    "TaskRepository",
    "CompanyWithStats",
    "ProjectWithStats",
    "RepoWithStats",
]
