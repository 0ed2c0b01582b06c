"""Hook-triggered ingestion of the current HEAD commit."""

from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from anchorman.errors import PersistenceError, WorkingCopyError
from anchorman.extraction import GitExtractor
from anchorman.models import CommitInfo, Settings
from anchorman.storage import CommitRepository, Database, RepoRepository

logger = structlog.get_logger(__name__)

SKIP_NOT_A_REPOSITORY = "not a git repository"
SKIP_NOT_TRACKED = "repo path not in configured scan_paths"
SKIP_DUPLICATE = "commit already recorded"


class IngestResult(BaseModel):
    """Outcome of recording one commit."""

    repo_path: Optional[str] = Field(None, description="Working-copy root")
    commit_hash: Optional[str] = Field(None, description="Full hash of the ingested commit")
    message: Optional[str] = Field(None, description="Commit subject line")
    skipped: bool = Field(False, description="True if nothing was written")
    skip_reason: Optional[str] = Field(None, description="Why the commit was skipped")

    @property
    def short_hash(self) -> str:
        return (self.commit_hash or "")[:8]


class CommitIngestor:
    """Records the HEAD commit of the working copy a hook fired in.

    Safe to run repeatedly and concurrently for the same commit: the
    (repository, hash) uniqueness constraint picks a single winner and every
    other caller reports a duplicate.
    """

    def __init__(self, database: Database, settings: Settings) -> None:
        """Initialize the ingestor.

        Args:
            database: Open database handle
            settings: Application settings (for the scan-path gate)
        """
        self.database = database
        self.settings = settings

    def ingest(self, cwd: Union[str, Path, None] = None) -> IngestResult:
        """Record the current commit.

        Args:
            cwd: Directory inside the working copy (defaults to the process cwd)

        Returns:
            IngestResult describing what was recorded or why it was skipped

        Raises:
            PersistenceError: On database failures other than a duplicate commit
        """
        result = IngestResult()

        try:
            extractor = GitExtractor(cwd)
        except WorkingCopyError:
            return self._skip(result, SKIP_NOT_A_REPOSITORY)

        repo_path = str(extractor.repo_root)
        result.repo_path = repo_path

        if not self.settings.is_path_tracked(repo_path):
            return self._skip(result, SKIP_NOT_TRACKED)

        info = extractor.current_commit()
        result.commit_hash = info.hash
        result.message = info.message

        try:
            recorded = self._record(repo_path, info)
        except IntegrityError as e:
            # Lost a race with a concurrent hook for the same commit
            if self._already_recorded(repo_path, info.hash):
                return self._skip(result, SKIP_DUPLICATE)
            raise PersistenceError(
                f"Failed to record commit {info.short_hash} in {repo_path}: {e.orig}"
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to record commit {info.short_hash} in {repo_path}: {e}"
            ) from e

        if not recorded:
            return self._skip(result, SKIP_DUPLICATE)

        logger.info("commit_recorded", repo_path=repo_path, commit=info.short_hash)
        return result

    def _record(self, repo_path: str, info: CommitInfo) -> bool:
        with self.database.session_scope() as session:
            repo = RepoRepository(session).get_or_create(repo_path)
            commits = CommitRepository(session)
            if commits.get_by_repo_and_hash(repo.id, info.hash) is not None:
                return False
            commits.create(repo.id, info)
            return True

    def _already_recorded(self, repo_path: str, commit_hash: str) -> bool:
        with self.database.session_scope() as session:
            repo = RepoRepository(session).get_by_path(repo_path)
            if repo is None:
                return False
            return CommitRepository(session).get_by_repo_and_hash(repo.id, commit_hash) is not None

    def _skip(self, result: IngestResult, reason: str) -> IngestResult:
        result.skipped = True
        result.skip_reason = reason
        logger.debug("commit_skipped", repo_path=result.repo_path, reason=reason)
        return result
