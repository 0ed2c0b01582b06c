"""Task derivation: unprocessed commits -> agent -> persisted tasks."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from anchorman.errors import AgentError, AnchormanError, PersistenceError
from anchorman.llm.base import SummarizationAgent
from anchorman.storage import (
    CommitRepository,
    Database,
    RawCommit,
    RepoRepository,
    TaskRepository,
)

logger = structlog.get_logger(__name__)


@dataclass
class DerivationGroup:
    """Unprocessed commits sharing one owning project."""

    project_id: int
    project_name: str
    commits: List[RawCommit] = field(default_factory=list)

    @property
    def commit_ids(self) -> List[int]:
        return [c.id for c in self.commits]

    @property
    def task_date(self) -> datetime:
        """Latest commit timestamp in the group."""
        return max(c.committed_at for c in self.commits)


@dataclass
class GroupFailure:
    project_id: int
    project_name: str
    error: str


@dataclass
class DerivationResult:
    commits_selected: int = 0
    orphans_skipped: int = 0
    groups_processed: int = 0
    tasks_created: int = 0
    failures: List[GroupFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


class TaskDerivationPipeline:
    """Summarizes unprocessed commits into tasks, one project at a time.

    A group's tasks and the processed flag of its commits are written in
    one transaction, so a failed group leaves its commits unprocessed. A
    failing group does not stop the remaining groups; every failure is
    reported in the result.
    """

    def __init__(self, database: Database, agent: SummarizationAgent) -> None:
        """Initialize the pipeline.

        Args:
            database: Open database handle
            agent: Summarization agent used for every group
        """
        self.database = database
        self.agent = agent

    def preview(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[DerivationGroup]:
        """Select and group commits without calling the agent."""
        groups, _, _ = self._select_groups(start, end)
        return groups

    def run(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> DerivationResult:
        """Derive tasks for every unprocessed, owned commit.

        Args:
            start: Inclusive lower bound on committed_at (requires ``end``)
            end: Inclusive upper bound on committed_at (requires ``start``)

        Returns:
            DerivationResult with counters and per-group failures
        """
        groups, selected, orphans = self._select_groups(start, end)
        result = DerivationResult(commits_selected=selected, orphans_skipped=orphans)

        for group in groups:
            try:
                created = self._process_group(group)
            except AnchormanError as e:
                logger.error(
                    "group_failed",
                    project=group.project_name,
                    commits=len(group.commits),
                    error=str(e),
                )
                result.failures.append(GroupFailure(group.project_id, group.project_name, str(e)))
                continue

            result.groups_processed += 1
            result.tasks_created += created

        return result

    def _select_groups(self, start: Optional[datetime], end: Optional[datetime]):
        if (start is None) != (end is None):
            raise ValueError("start and end must be given together")

        with self.database.session_scope() as session:
            commit_repo = CommitRepository(session)
            if start is None:
                commits = commit_repo.get_unprocessed()
            else:
                commits = commit_repo.get_unprocessed_in_date_range(start, end)

            repo_repo = RepoRepository(session)
            repos = {}
            groups: Dict[int, DerivationGroup] = {}
            orphans = 0
            for commit in commits:
                if commit.repo_id not in repos:
                    repos[commit.repo_id] = repo_repo.get_by_id(commit.repo_id)
                repo = repos[commit.repo_id]
                if repo is None or repo.project is None:
                    orphans += 1
                    continue
                group = groups.get(repo.project_id)
                if group is None:
                    group = DerivationGroup(repo.project_id, repo.project.name or "Unknown")
                    groups[repo.project_id] = group
                group.commits.append(commit)

        ordered = sorted(groups.values(), key=lambda g: (g.project_name, g.project_id))
        return ordered, len(commits), orphans

    def _process_group(self, group: DerivationGroup) -> int:
        log = logger.bind(project=group.project_name, commits=len(group.commits))
        log.info("group_started")

        tasks = self.agent.process(group.project_name, group.commits)
        if not tasks:
            raise AgentError(f"{self.agent.name or 'agent'} returned no tasks for {group.project_name}")

        commit_ids = group.commit_ids
        task_date = group.task_date
        try:
            with self.database.session_scope() as session:
                task_repo = TaskRepository(session)
                for task in tasks:
                    task_repo.create(
                        group.project_id,
                        task.description,
                        commit_ids,
                        task_date,
                        task.estimated_hours,
                    )
                CommitRepository(session).mark_processed(commit_ids)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store tasks for {group.project_name}: {e}") from e

        log.info("group_finished", tasks=len(tasks))
        return len(tasks)
