"""Tests for the command-line interface."""

import json
from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from anchorman.cli import app, parse_import_target, resolve_process_range
from anchorman.llm import SummarizationAgent
from anchorman.models import Settings, TaskResult
from anchorman.storage import Database, DatabaseConfig, RepoRepository, TaskRepository

runner = CliRunner()


class StubAgent(SummarizationAgent):
    name = "stub"

    def process(self, project_name, commits):
        return [TaskResult(description=f"Worked on {project_name}", estimated_hours=1.0)]


@pytest.fixture
def cli_env(monkeypatch, tmp_path, projects_dir):
    monkeypatch.setenv("ANCHORMAN_SCAN_PATHS", json.dumps([str(projects_dir)]))
    monkeypatch.setenv("ANCHORMAN_HOOKS_DIR", str(tmp_path / "hooks"))
    return Settings()


def open_db(settings):
    return Database.open(DatabaseConfig.from_settings(settings))


class TestArgumentParsing:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, (None, None)),
            ("10", (10, None)),
            ("0", (0, None)),
            ("2024-01-15", (None, date(2024, 1, 15))),
        ],
    )
    def test_parse_import_target(self, value, expected):
        assert parse_import_target(value) == expected

    @pytest.mark.parametrize("value", ["ten", "2024-13-01", "-3", "15/01/2024"])
    def test_parse_import_target_rejects(self, value):
        with pytest.raises(typer.BadParameter):
            parse_import_target(value)

    def test_no_range(self):
        assert resolve_process_range(None, None, None) == (None, None)

    def test_days(self):
        start, end = resolve_process_range(None, None, 7, today=date(2024, 3, 10))

        assert start.date() == date(2024, 3, 3)
        assert (start.hour, start.minute) == (0, 0)
        assert end.date() == date(2024, 3, 10)
        assert end.hour == 23
        assert start.tzinfo is not None

    def test_since_until(self):
        start, end = resolve_process_range("2024-01-01", "2024-01-31", None)

        assert start == datetime(2024, 1, 1).astimezone()
        assert end - datetime(2024, 1, 31).astimezone() < timedelta(days=1)

    def test_since_only_runs_to_today(self):
        start, end = resolve_process_range("2024-01-01", None, None, today=date(2024, 2, 1))

        assert end.date() == date(2024, 2, 1)

    def test_days_and_since_conflict(self):
        with pytest.raises(typer.BadParameter):
            resolve_process_range("2024-01-01", None, 3)

    def test_reversed_range(self):
        with pytest.raises(typer.BadParameter):
            resolve_process_range("2024-02-01", "2024-01-01", None)


class TestImportCommand:
    def test_import_count(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=5)
        monkeypatch.chdir(repo.working_tree_dir)

        result = runner.invoke(app, ["import", "3"])

        assert result.exit_code == 0, result.output
        assert "Imported: 3" in result.output
        assert "no project yet" in result.output

    def test_import_rejects_bad_argument(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=1)
        monkeypatch.chdir(repo.working_tree_dir)

        result = runner.invoke(app, ["import", "yesterday"])

        assert result.exit_code != 0

    def test_import_outside_repository(self, cli_env, projects_dir, monkeypatch):
        monkeypatch.chdir(projects_dir)

        result = runner.invoke(app, ["import"])

        assert result.exit_code == 1
        assert "Not a git repository" in result.output

    def test_force_flag(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=2)
        monkeypatch.chdir(repo.working_tree_dir)
        runner.invoke(app, ["import"])

        result = runner.invoke(app, ["import", "-f"])

        assert result.exit_code == 0, result.output
        assert "Updated:  2" in result.output


class TestIngestCommand:
    def test_ingest_records_commit(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=1)
        monkeypatch.chdir(repo.working_tree_dir)

        result = runner.invoke(app, ["ingest"])

        assert result.exit_code == 0
        with open_db(cli_env) as db, db.session_scope() as session:
            assert RepoRepository(session).get_by_path(repo.working_tree_dir) is not None

    def test_ingest_outside_repository_is_silent(self, cli_env, projects_dir, monkeypatch):
        monkeypatch.chdir(projects_dir)

        result = runner.invoke(app, ["ingest"])

        assert result.exit_code == 0
        assert result.output == ""

    def test_ingest_failure_goes_to_error_log(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=0)
        monkeypatch.chdir(repo.working_tree_dir)

        result = runner.invoke(app, ["ingest"])

        assert result.exit_code == 1
        lines = cli_env.error_log_path.read_text().splitlines()
        assert len(lines) == 1
        assert "WorkingCopyError" in lines[0]

    def test_unreadable_config_goes_to_error_log(
        self, cli_env, isolated_env, make_repo, monkeypatch
    ):
        repo = make_repo(commits=1)
        isolated_env.mkdir(parents=True, exist_ok=True)
        (isolated_env / "config.toml").write_text("scan_paths = [unterminated\n")
        monkeypatch.chdir(repo.working_tree_dir)

        result = runner.invoke(app, ["ingest"])

        assert result.exit_code == 1
        lines = (isolated_env / "errors.log").read_text().splitlines()
        assert len(lines) == 1
        assert "ingest_failed" in lines[0]
        assert not (isolated_env / "db").exists()


class TestOwnershipCommands:
    def test_project_add_and_assign(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=2)
        monkeypatch.chdir(repo.working_tree_dir)
        runner.invoke(app, ["import"])

        added = runner.invoke(app, ["project", "add", "Website", "--company", "Acme"])
        assigned = runner.invoke(app, ["repo", "assign", repo.working_tree_dir, "1"])
        listed = runner.invoke(app, ["project", "list"])

        assert added.exit_code == 0, added.output
        assert assigned.exit_code == 0, assigned.output
        assert "Website" in listed.output
        assert "Acme" in listed.output
        with open_db(cli_env) as db, db.session_scope() as session:
            stored = RepoRepository(session).get_by_path(repo.working_tree_dir)
            assert stored.project.name == "Website"

    def test_assign_unknown_repository(self, cli_env, tmp_path):
        result = runner.invoke(app, ["repo", "assign", str(tmp_path), "1"])

        assert result.exit_code == 1
        assert "not tracked" in result.output

    def test_assign_unknown_project(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=1)
        monkeypatch.chdir(repo.working_tree_dir)
        runner.invoke(app, ["import"])

        result = runner.invoke(app, ["repo", "assign", repo.working_tree_dir, "42"])

        assert result.exit_code == 1
        assert "No project with id 42" in result.output


class TestProcessCommand:
    def test_process_creates_tasks(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=3)
        monkeypatch.chdir(repo.working_tree_dir)
        runner.invoke(app, ["import"])
        runner.invoke(app, ["project", "add", "Website"])
        runner.invoke(app, ["repo", "assign", ".", "1"])

        with patch("anchorman.cli.create_agent", return_value=StubAgent()):
            result = runner.invoke(app, ["process"])

        assert result.exit_code == 0, result.output
        assert "Tasks created" in result.output
        with open_db(cli_env) as db, db.session_scope() as session:
            (task,) = TaskRepository(session).get_all()
            assert task.description == "Worked on Website"
            assert len(task.source_commits) == 3

    def test_dry_run_does_not_process(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=2)
        monkeypatch.chdir(repo.working_tree_dir)
        runner.invoke(app, ["import"])
        runner.invoke(app, ["project", "add", "Website"])
        runner.invoke(app, ["repo", "assign", ".", "1"])

        with patch("anchorman.cli.create_agent", return_value=StubAgent()):
            result = runner.invoke(app, ["process", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Website" in result.output
        with open_db(cli_env) as db, db.session_scope() as session:
            assert TaskRepository(session).get_all() == []

    def test_unknown_agent(self, cli_env):
        result = runner.invoke(app, ["process", "--agent", "gpt"])

        assert result.exit_code == 1
        assert "unknown agent type" in result.output


class TestStatusAndHooks:
    def test_status(self, cli_env, make_repo, monkeypatch):
        repo = make_repo(commits=2)
        monkeypatch.chdir(repo.working_tree_dir)
        runner.invoke(app, ["import"])

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0, result.output
        assert "Unprocessed commits: 2" in result.output
        assert "never" in result.output

    def test_hooks_round_trip(self, cli_env, tmp_path):
        installed = runner.invoke(app, ["hooks", "install"])
        status = runner.invoke(app, ["hooks", "status"])
        removed = runner.invoke(app, ["hooks", "uninstall"])

        assert installed.exit_code == 0, installed.output
        assert "installed" in status.output
        assert removed.exit_code == 0, removed.output
        assert not (tmp_path / "hooks").exists()
