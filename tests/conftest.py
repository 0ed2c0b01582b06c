"""Shared fixtures: isolated state directory, git config, database and repositories."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import git
import pytest
import structlog

from anchorman.models import Settings
from anchorman.storage import Database, DatabaseConfig

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep every test away from the real home directory and git config."""
    home = tmp_path / "anchorman-home"
    global_config = tmp_path / "gitconfig"
    global_config.write_text("")

    monkeypatch.setenv("ANCHORMAN_HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("ANCHORMAN_SCAN_PATHS", "ANCHORMAN_DEFAULT_AGENT", "ANCHORMAN_HOOKS_DIR"):
        monkeypatch.delenv(var, raising=False)
    yield home
    structlog.reset_defaults()


@pytest.fixture
def projects_dir(tmp_path):
    path = tmp_path / "projects"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, isolated_env, projects_dir):
    return Settings(
        home=isolated_env,
        scan_paths=[projects_dir],
        hooks_dir=tmp_path / "hooks",
    )


@pytest.fixture
def database(settings):
    db = Database(DatabaseConfig.from_settings(settings))
    yield db
    db.dispose()


def commit_file(repo, name, content, message, when):
    """Write a file and commit it with a fixed author and commit date."""
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    stamp = f"{int(when.timestamp())} +0000"
    return repo.index.commit(message, author_date=stamp, commit_date=stamp)


@pytest.fixture
def make_repo(projects_dir):
    """Factory creating a repository with ``commits`` commits, one day apart."""

    def factory(name="app", commits=3, parent=None, step=timedelta(days=1)):
        repo_path = (parent or projects_dir) / name
        repo = git.Repo.init(repo_path)
        with repo.config_writer() as cw:
            cw.set_value("user", "name", "Test User")
            cw.set_value("user", "email", "test@example.com")
        for i in range(commits):
            commit_file(
                repo,
                f"file{i + 1}.txt",
                f"content {i + 1}\n",
                f"C{i + 1}",
                BASE_TIME + step * i,
            )
        return repo

    return factory


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def add_commit():
    """Commit a file to an existing repository at a given time."""
    return commit_file
