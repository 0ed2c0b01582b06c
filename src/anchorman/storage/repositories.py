"""Repository-style access to the relational store.

Every repository wraps a caller-owned ``Session``; the caller decides the
transaction boundary (see ``Database.session_scope``).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

import structlog
from sqlalchemy import case, delete, distinct, func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, joinedload

from anchorman.models import CommitInfo
from anchorman.storage.schema import Company, Project, RawCommit, Repo, Task, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class CompanyWithStats:
    company: Company
    project_count: int
    repo_count: int
    task_count: int


@dataclass
class ProjectWithStats:
    project: Project
    repo_count: int
    task_count: int
    commit_count: int


@dataclass
class RepoWithStats:
    repo: Repo
    commit_count: int
    unprocessed_commit_count: int


class CompanyRepository:
    """CRUD operations for companies."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, name: str) -> Company:
        company = Company(name=name)
        self.session.add(company)
        self.session.flush()
        return company

    def get_by_id(self, company_id: int) -> Optional[Company]:
        return self.session.get(Company, company_id)

    def get_by_name(self, name: str) -> Optional[Company]:
        return self.session.scalars(select(Company).where(Company.name == name)).first()

    def get_all(self) -> List[Company]:
        return list(self.session.scalars(select(Company).order_by(Company.name)))

    def update(self, company_id: int, name: str) -> None:
        self.session.execute(update(Company).where(Company.id == company_id).values(name=name))

    def delete(self, company_id: int) -> None:
        """Delete a company; its projects become orphans."""
        self.session.execute(delete(Company).where(Company.id == company_id))
        self.session.expire_all()

    def get_all_with_stats(self) -> List[CompanyWithStats]:
        stmt = (
            select(
                Company,
                func.count(distinct(Project.id)),
                func.count(distinct(Repo.id)),
                func.count(distinct(Task.id)),
            )
            .outerjoin(Project, Project.company_id == Company.id)
            .outerjoin(Repo, Repo.project_id == Project.id)
            .outerjoin(Task, Task.project_id == Project.id)
            .group_by(Company.id)
            .order_by(Company.name)
        )
        return [
            CompanyWithStats(company, projects, repos, tasks)
            for company, projects, repos, tasks in self.session.execute(stmt)
        ]


class ProjectRepository:
    """CRUD operations for projects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _select(self):
        return select(Project).options(joinedload(Project.company))

    def create(self, name: str, company_id: Optional[int] = None) -> Project:
        project = Project(name=name, company_id=company_id)
        self.session.add(project)
        self.session.flush()
        return project

    def get_by_id(self, project_id: int) -> Optional[Project]:
        return self.session.scalars(self._select().where(Project.id == project_id)).first()

    def get_all(self) -> List[Project]:
        stmt = self._select().outerjoin(Company).order_by(Company.name, Project.name)
        return list(self.session.scalars(stmt))

    def get_by_company_id(self, company_id: int) -> List[Project]:
        stmt = self._select().where(Project.company_id == company_id).order_by(Project.name)
        return list(self.session.scalars(stmt))

    def get_orphans(self) -> List[Project]:
        stmt = select(Project).where(Project.company_id.is_(None)).order_by(Project.name)
        return list(self.session.scalars(stmt))

    def update(self, project_id: int, name: str) -> None:
        self.session.execute(update(Project).where(Project.id == project_id).values(name=name))

    def set_company(self, project_id: int, company_id: Optional[int]) -> None:
        self.session.execute(
            update(Project).where(Project.id == project_id).values(company_id=company_id)
        )

    def delete(self, project_id: int) -> None:
        """Delete a project; its repos become orphans and its tasks are removed."""
        self.session.execute(delete(Project).where(Project.id == project_id))
        self.session.expire_all()

    def get_all_with_stats(self) -> List[ProjectWithStats]:
        stmt = (
            select(
                Project,
                func.count(distinct(Repo.id)),
                func.count(distinct(Task.id)),
                func.count(distinct(RawCommit.id)),
            )
            .options(joinedload(Project.company))
            .outerjoin(Company, Company.id == Project.company_id)
            .outerjoin(Repo, Repo.project_id == Project.id)
            .outerjoin(Task, Task.project_id == Project.id)
            .outerjoin(RawCommit, RawCommit.repo_id == Repo.id)
            .group_by(Project.id)
            .order_by(Company.name, Project.name)
        )
        return [
            ProjectWithStats(project, repos, tasks, commits)
            for project, repos, tasks, commits in self.session.execute(stmt).unique()
        ]


class RepoRepository:
    """CRUD operations for tracked repositories."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _select(self):
        return select(Repo).options(joinedload(Repo.project).joinedload(Project.company))

    def create(self, path: str, project_id: Optional[int] = None) -> Repo:
        repo = Repo(path=path, project_id=project_id)
        self.session.add(repo)
        self.session.flush()
        return repo

    def get_or_create(self, path: str) -> Repo:
        """Get the repository for a path, creating it as an orphan if new.

        Concurrent callers racing on the same path all get the single row.
        """
        repo = self.get_by_path(path)
        if repo is not None:
            return repo

        stmt = (
            sqlite_insert(Repo)
            .values(path=path, project_id=None, created_at=utc_now())
            .on_conflict_do_nothing(index_elements=["path"])
        )
        result = self.session.execute(stmt)
        if result.rowcount:
            logger.info("repo_registered", path=path)
        return self.get_by_path(path)

    def get_by_id(self, repo_id: int) -> Optional[Repo]:
        return self.session.scalars(self._select().where(Repo.id == repo_id)).first()

    def get_by_path(self, path: str) -> Optional[Repo]:
        return self.session.scalars(self._select().where(Repo.path == path)).first()

    def get_all(self) -> List[Repo]:
        stmt = (
            self._select()
            .outerjoin(Project, Project.id == Repo.project_id)
            .outerjoin(Company, Company.id == Project.company_id)
            .order_by(Company.name, Project.name, Repo.path)
        )
        return list(self.session.scalars(stmt).unique())

    def get_orphans(self) -> List[Repo]:
        stmt = select(Repo).where(Repo.project_id.is_(None)).order_by(Repo.path)
        return list(self.session.scalars(stmt))

    def get_by_project_id(self, project_id: int) -> List[Repo]:
        stmt = self._select().where(Repo.project_id == project_id).order_by(Repo.path)
        return list(self.session.scalars(stmt))

    def set_project(self, repo_id: int, project_id: Optional[int]) -> None:
        self.session.execute(update(Repo).where(Repo.id == repo_id).values(project_id=project_id))
        self.session.expire_all()

    def delete(self, repo_id: int) -> None:
        """Delete a repository together with its commits."""
        self.session.execute(delete(Repo).where(Repo.id == repo_id))
        self.session.expire_all()

    def get_all_with_stats(self) -> List[RepoWithStats]:
        unprocessed = func.coalesce(
            func.sum(case((RawCommit.processed.is_(False), 1), else_=0)), 0
        )
        stmt = (
            select(Repo, func.count(RawCommit.id), unprocessed)
            .options(joinedload(Repo.project).joinedload(Project.company))
            .outerjoin(Project, Project.id == Repo.project_id)
            .outerjoin(Company, Company.id == Project.company_id)
            .outerjoin(RawCommit, RawCommit.repo_id == Repo.id)
            .group_by(Repo.id)
            .order_by(Company.name, Project.name, Repo.path)
        )
        return [
            RepoWithStats(repo, commits, int(pending))
            for repo, commits, pending in self.session.execute(stmt).unique()
        ]


class CommitRepository:
    """Access to raw commit records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, repo_id: int, info: CommitInfo) -> RawCommit:
        commit = RawCommit(
            repo_id=repo_id,
            hash=info.hash,
            message=info.message,
            author=info.author,
            branch=info.branch,
            files_changed=list(info.files_changed),
            committed_at=info.committed_at,
            processed=False,
        )
        self.session.add(commit)
        self.session.flush()
        return commit

    def get_by_id(self, commit_id: int) -> Optional[RawCommit]:
        return self.session.get(RawCommit, commit_id)

    def get_by_repo_and_hash(self, repo_id: int, commit_hash: str) -> Optional[RawCommit]:
        stmt = select(RawCommit).where(RawCommit.repo_id == repo_id, RawCommit.hash == commit_hash)
        return self.session.scalars(stmt).first()

    def _unprocessed(self, *criteria) -> List[RawCommit]:
        stmt = (
            select(RawCommit)
            .where(RawCommit.processed.is_(False), *criteria)
            .order_by(RawCommit.committed_at, RawCommit.id)
        )
        return list(self.session.scalars(stmt))

    def get_unprocessed(self) -> List[RawCommit]:
        return self._unprocessed()

    def get_unprocessed_in_date_range(self, start: datetime, end: datetime) -> List[RawCommit]:
        """Unprocessed commits with start <= committed_at <= end."""
        return self._unprocessed(RawCommit.committed_at >= start, RawCommit.committed_at <= end)

    def get_unprocessed_by_project_id(self, project_id: int) -> List[RawCommit]:
        repo_ids = select(Repo.id).where(Repo.project_id == project_id)
        return self._unprocessed(RawCommit.repo_id.in_(repo_ids))

    def mark_processed(self, commit_ids: Iterable[int]) -> None:
        ids = list(commit_ids)
        if not ids:
            return
        self.session.execute(
            update(RawCommit).where(RawCommit.id.in_(ids)).values(processed=True)
        )

    def update_and_mark_unprocessed(self, commit_id: int, info: CommitInfo) -> None:
        """Overwrite a commit's mutable fields and reset its processed flag."""
        self.session.execute(
            update(RawCommit)
            .where(RawCommit.id == commit_id)
            .values(
                message=info.message,
                author=info.author,
                branch=info.branch,
                files_changed=list(info.files_changed),
                committed_at=info.committed_at,
                processed=False,
            )
        )

    def count_unprocessed(self) -> int:
        stmt = select(func.count(RawCommit.id)).where(RawCommit.processed.is_(False))
        return self.session.scalar(stmt) or 0

    def get_last_processed_time(self) -> Optional[datetime]:
        """Creation time of the most recently derived task, if any."""
        return self.session.scalar(select(func.max(Task.created_at)))


class TaskRepository:
    """Access to derived tasks."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _select(self):
        return select(Task).options(joinedload(Task.project))

    def create(
        self,
        project_id: int,
        description: str,
        source_commits: Iterable[int],
        task_date: datetime,
        estimated_hours: float = 0.5,
    ) -> Task:
        task = Task(
            project_id=project_id,
            description=description,
            source_commits=list(source_commits),
            task_date=task_date,
            estimated_hours=estimated_hours,
        )
        self.session.add(task)
        self.session.flush()
        return task

    def get_by_id(self, task_id: int) -> Optional[Task]:
        return self.session.scalars(self._select().where(Task.id == task_id)).first()

    def get_by_project_and_date_range(
        self, project_id: int, start: datetime, end: datetime
    ) -> List[Task]:
        stmt = (
            self._select()
            .where(Task.project_id == project_id, Task.task_date >= start, Task.task_date <= end)
            .order_by(Task.task_date)
        )
        return list(self.session.scalars(stmt))

    def get_by_company_and_date_range(
        self, company_id: int, start: datetime, end: datetime
    ) -> List[Task]:
        stmt = (
            self._select()
            .join(Project, Project.id == Task.project_id)
            .where(Project.company_id == company_id, Task.task_date >= start, Task.task_date <= end)
            .order_by(Project.name, Task.task_date)
        )
        return list(self.session.scalars(stmt))

    def get_by_date_range(self, start: datetime, end: datetime) -> List[Task]:
        stmt = (
            self._select()
            .join(Project, Project.id == Task.project_id)
            .where(Task.task_date >= start, Task.task_date <= end)
            .order_by(Project.name, Task.task_date)
        )
        return list(self.session.scalars(stmt))

    def get_all(self) -> List[Task]:
        return list(self.session.scalars(self._select().order_by(Task.id)))

    def delete(self, task_id: int) -> None:
        self.session.execute(delete(Task).where(Task.id == task_id))

    def delete_by_project_id(self, project_id: int) -> int:
        result = self.session.execute(delete(Task).where(Task.project_id == project_id))
        return result.rowcount

    def delete_tasks_with_commit(self, commit_id: int) -> int:
        """Delete every task whose source commits include ``commit_id``.

        Returns:
            Number of tasks deleted
        """
        doomed = [
            task.id
            for task in self.session.scalars(select(Task))
            if commit_id in task.source_commits
        ]
        if doomed:
            self.session.execute(delete(Task).where(Task.id.in_(doomed)))
            logger.info("tasks_invalidated", commit_id=commit_id, count=len(doomed))
        return len(doomed)
