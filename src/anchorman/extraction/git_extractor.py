"""Git repository activity extraction."""

from datetime import date, datetime, time
from pathlib import Path
from typing import List, Optional, Union

import git
from git import Commit, Repo

from anchorman.errors import WorkingCopyError
from anchorman.models import CommitInfo

UNKNOWN_BRANCH = "unknown"


class GitExtractor:
    """Reads commit metadata from a local working copy."""

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        """Open the working copy containing ``path``.

        Args:
            path: Any path inside the working copy (defaults to the current directory)

        Raises:
            WorkingCopyError: If the path is not inside a non-bare git working copy
        """
        path = Path(path) if path is not None else Path.cwd()
        try:
            self.repo = Repo(path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise WorkingCopyError(f"Not a git repository: {path}") from e

        if self.repo.bare or self.repo.working_tree_dir is None:
            raise WorkingCopyError(f"Repository has no working tree: {path}")

    @property
    def repo_root(self) -> Path:
        """Absolute path of the working-tree root."""
        return Path(self.repo.working_tree_dir).absolute()

    def current_commit(self) -> CommitInfo:
        """Extract metadata for the HEAD commit.

        Returns:
            CommitInfo for HEAD

        Raises:
            WorkingCopyError: If the repository has no commits yet
        """
        try:
            commit = self.repo.head.commit
        except ValueError as e:
            raise WorkingCopyError(f"No commits yet in {self.repo_root}") from e

        branch = self.repo.git.rev_parse("--abbrev-ref", "HEAD")
        return self._to_commit_info(commit, branch)

    def commit_history(
        self,
        count: Optional[int] = None,
        since: Optional[date] = None,
        branch: Optional[str] = None,
    ) -> List[CommitInfo]:
        """Extract a bounded commit range, oldest first.

        Args:
            count: Keep only the N most recent commits (None or 0 = no limit)
            since: Only commits on or after this date
            branch: Branch to walk (None = all refs). Commits are still
                labelled with the first branch containing them.

        Returns:
            List of CommitInfo ordered oldest to newest

        Raises:
            WorkingCopyError: If git rejects the range (e.g. unknown branch)
        """
        kwargs = {}
        if count:
            kwargs["max_count"] = count
        if since:
            # Explicit midnight: git fills a bare date with the current time of day
            kwargs["since"] = datetime.combine(since, time.min).isoformat()
        if not branch:
            kwargs["all"] = True

        try:
            commits = list(self.repo.iter_commits(branch or None, **kwargs))
        except ValueError:
            # HEAD does not resolve yet: empty repository
            return []
        except git.exc.GitCommandError as e:
            raise WorkingCopyError(
                f"git log failed in {self.repo_root}: {e.stderr.strip() if e.stderr else e}"
            ) from e

        commits.reverse()
        return [
            self._to_commit_info(commit, self._branch_containing(commit.hexsha))
            for commit in commits
        ]

    def _to_commit_info(self, commit: Commit, branch: str) -> CommitInfo:
        """Convert a GitPython Commit into CommitInfo.

        Args:
            commit: GitPython Commit object
            branch: Branch name to record

        Returns:
            CommitInfo object
        """
        summary = commit.summary
        if isinstance(summary, bytes):
            summary = summary.decode("utf-8", "replace")

        return CommitInfo(
            hash=commit.hexsha,
            message=summary,
            author=f"{commit.author.name} <{commit.author.email}>",
            branch=branch,
            files_changed=self._changed_files(commit.hexsha),
            committed_at=commit.committed_datetime,
        )

    def _changed_files(self, hexsha: str) -> List[str]:
        # --root makes the initial commit list its whole tree
        output = self.repo.git.diff_tree("--root", "--no-commit-id", "--name-only", "-r", hexsha)
        return [line for line in output.splitlines() if line]

    def _branch_containing(self, hexsha: str) -> str:
        try:
            output = self.repo.git.branch("--contains", hexsha, "--format=%(refname:short)")
        except git.exc.GitCommandError:
            return UNKNOWN_BRANCH
        for line in output.splitlines():
            line = line.strip()
            # Skip "(HEAD detached at ...)" pseudo-entries
            if line and not line.startswith("("):
                return line
        return UNKNOWN_BRANCH
