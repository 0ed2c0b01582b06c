"""Historical import of a working copy's commits, with force re-import."""

from datetime import date
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from anchorman.errors import PersistenceError
from anchorman.extraction import GitExtractor
from anchorman.models import CommitInfo, Settings
from anchorman.storage import CommitRepository, Database, RepoRepository, TaskRepository

logger = structlog.get_logger(__name__)


class ImportOptions(BaseModel):
    """Which commits to import and how to treat ones already stored."""

    count: Optional[int] = Field(None, ge=0, description="Most recent N commits (None or 0 = all)")
    since: Optional[date] = Field(None, description="Only commits on or after this date")
    branch: Optional[str] = Field(None, description="Restrict to one branch (None = all branches)")
    force: bool = Field(False, description="Overwrite stored commits and invalidate derived tasks")

    @model_validator(mode="after")
    def _count_or_since(self) -> "ImportOptions":
        if self.count and self.since is not None:
            raise ValueError("count and since are mutually exclusive")
        return self


class ImportResult(BaseModel):
    """Counters reported by an import run."""

    repo_path: str = Field(..., description="Working-copy root")
    total_found: int = Field(0, description="Commits returned by git for the range")
    imported: int = Field(0, description="New commits stored")
    skipped: int = Field(0, description="Commits already stored and left untouched")
    updated: int = Field(0, description="Stored commits overwritten in force mode")
    tasks_deleted: int = Field(0, description="Tasks invalidated in force mode")
    is_orphan: bool = Field(False, description="Repository has no project yet")
    not_in_scan_path: bool = Field(False, description="Hooks will not track this repository")


class CommitImporter:
    """Imports a bounded commit range from a working copy.

    In force mode every already-stored commit goes through the invalidation
    protocol: tasks derived from it are deleted, its data is overwritten and
    it is marked unprocessed, all in one transaction. No task can therefore
    reference a commit whose data was rewritten after the task was derived.
    """

    def __init__(self, database: Database, settings: Settings) -> None:
        """Initialize the importer.

        Args:
            database: Open database handle
            settings: Application settings (for the scan-path warning)
        """
        self.database = database
        self.settings = settings

    def run(
        self,
        options: Optional[ImportOptions] = None,
        cwd: Union[str, Path, None] = None,
    ) -> ImportResult:
        """Import commits from the working copy containing ``cwd``.

        Args:
            options: Range and force options (defaults to all commits, no force)
            cwd: Directory inside the working copy (defaults to the process cwd)

        Returns:
            ImportResult with per-outcome counters

        Raises:
            WorkingCopyError: If ``cwd`` is not inside a git working copy
            PersistenceError: If a commit cannot be written
        """
        options = options or ImportOptions()
        extractor = GitExtractor(cwd)
        repo_path = str(extractor.repo_root)
        result = ImportResult(repo_path=repo_path)

        if not self.settings.is_path_tracked(repo_path):
            result.not_in_scan_path = True
            logger.warning("repo_not_in_scan_paths", repo_path=repo_path)

        try:
            with self.database.session_scope() as session:
                repo = RepoRepository(session).get_or_create(repo_path)
                repo_id = repo.id
                result.is_orphan = repo.is_orphan
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to register repository {repo_path}: {e}") from e

        commits = extractor.commit_history(
            count=options.count,
            since=options.since,
            branch=options.branch,
        )
        result.total_found = len(commits)
        logger.info("import_started", repo_path=repo_path, found=len(commits), force=options.force)

        for info in commits:
            self._import_commit(repo_id, repo_path, info, options.force, result)

        logger.info(
            "import_finished",
            repo_path=repo_path,
            imported=result.imported,
            skipped=result.skipped,
            updated=result.updated,
            tasks_deleted=result.tasks_deleted,
        )
        return result

    def _import_commit(
        self,
        repo_id: int,
        repo_path: str,
        info: CommitInfo,
        force: bool,
        result: ImportResult,
        retry: bool = True,
    ) -> None:
        try:
            with self.database.session_scope() as session:
                commits = CommitRepository(session)
                existing = commits.get_by_repo_and_hash(repo_id, info.hash)

                if existing is None:
                    commits.create(repo_id, info)
                    outcome = "imported"
                    deleted = 0
                elif force:
                    deleted = TaskRepository(session).delete_tasks_with_commit(existing.id)
                    commits.update_and_mark_unprocessed(existing.id, info)
                    outcome = "updated"
                else:
                    outcome = "skipped"
                    deleted = 0
        except IntegrityError as e:
            # A hook recorded this commit between our lookup and insert
            if retry:
                self._import_commit(repo_id, repo_path, info, force, result, retry=False)
                return
            raise PersistenceError(
                f"Failed to import commit {info.short_hash} in {repo_path}: {e.orig}"
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to import commit {info.short_hash} in {repo_path}: {e}"
            ) from e

        if outcome == "imported":
            result.imported += 1
        elif outcome == "updated":
            result.updated += 1
            result.tasks_deleted += deleted
            logger.debug("commit_reimported", commit=info.short_hash, tasks_deleted=deleted)
        else:
            result.skipped += 1
