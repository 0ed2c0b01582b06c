"""Tests for settings and the scan-path gate."""

from pathlib import Path

import pytest

from anchorman.models import Settings, is_path_tracked
from anchorman.models.config import default_home
from anchorman.storage import DatabaseConfig


class TestScanPathGate:
    """Test is_path_tracked."""

    @pytest.mark.parametrize(
        "repo_path, tracked",
        [
            ("/a/b", True),
            ("/a/b/c", True),
            ("/a/b/c/d/e", True),
            ("/a/bc", False),
            ("/a", False),
            ("/x", False),
            ("/a/b/../bc", False),
            ("/a/b/./c", True),
        ],
    )
    def test_single_scan_path(self, repo_path, tracked):
        assert is_path_tracked(repo_path, ["/a/b"]) is tracked

    def test_multiple_scan_paths(self):
        assert is_path_tracked("/work/client/app", ["/home/me/Projects", "/work"])
        assert not is_path_tracked("/tmp/app", ["/home/me/Projects", "/work"])

    def test_no_scan_paths(self):
        assert not is_path_tracked("/a/b", [])

    def test_home_expansion(self):
        assert is_path_tracked(Path.home() / "Projects" / "app", ["~/Projects"])


class TestSettings:
    """Test Settings loading."""

    def test_defaults(self, isolated_env):
        settings = Settings()

        assert settings.default_agent == "codex"
        assert settings.scan_paths == [Path.home() / "Projects"]
        assert settings.home == isolated_env
        assert settings.agent_timeout is None

    def test_derived_paths(self, tmp_path):
        settings = Settings(home=tmp_path / "state")

        assert settings.database_path == tmp_path / "state" / "db" / "anchorman.sqlite"
        assert settings.error_log_path == tmp_path / "state" / "errors.log"
        assert settings.hook_state_path == tmp_path / "state" / "hooks.json"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("ANCHORMAN_DEFAULT_AGENT", "claude")
        monkeypatch.setenv("ANCHORMAN_SCAN_PATHS", '["/srv/code"]')

        settings = Settings()

        assert settings.default_agent == "claude"
        assert settings.scan_paths == [Path("/srv/code")]

    def test_toml_file(self, isolated_env):
        isolated_env.mkdir(parents=True)
        (isolated_env / "config.toml").write_text(
            'scan_paths = ["~/Code", "/opt/work"]\ndefault_agent = "claude"\n'
        )

        settings = Settings()

        assert settings.scan_paths == [Path.home() / "Code", Path("/opt/work")]
        assert settings.default_agent == "claude"
        assert settings.is_path_tracked("/opt/work/repo")

    def test_environment_beats_toml(self, isolated_env, monkeypatch):
        isolated_env.mkdir(parents=True)
        (isolated_env / "config.toml").write_text('default_agent = "claude"\n')
        monkeypatch.setenv("ANCHORMAN_DEFAULT_AGENT", "codex")

        assert Settings().default_agent == "codex"

    def test_ensure_directories(self, tmp_path):
        settings = Settings(home=tmp_path / "state")

        settings.ensure_directories()

        assert (tmp_path / "state" / "db").is_dir()

    def test_ensure_directories_writes_default_config(self, tmp_path):
        state = tmp_path / "state"
        Settings(home=state).ensure_directories()

        reloaded = Settings(home=state)

        assert (state / "config.toml").read_text().startswith("# Anchorman configuration")
        assert reloaded.default_agent == "codex"
        assert reloaded.scan_paths == [Path.home() / "Projects"]
        assert reloaded.reports_output == Path.home() / "Documents" / "reports"

    def test_ensure_directories_keeps_existing_config(self, tmp_path):
        state = tmp_path / "state"
        state.mkdir()
        (state / "config.toml").write_text('default_agent = "claude"\n')

        Settings(home=state).ensure_directories()

        assert (state / "config.toml").read_text() == 'default_agent = "claude"\n'
        assert Settings(home=state).default_agent == "claude"

    def test_explicit_home_reads_its_own_config(self, isolated_env, tmp_path):
        isolated_env.mkdir(parents=True)
        (isolated_env / "config.toml").write_text('default_agent = "codex"\n')
        other = tmp_path / "other"
        other.mkdir()
        (other / "config.toml").write_text('default_agent = "claude"\nscan_paths = ["/opt/work"]\n')

        settings = Settings(home=other)

        assert settings.default_agent == "claude"
        assert settings.scan_paths == [Path("/opt/work")]
        assert Settings().default_agent == "codex"

    def test_default_home_override(self, isolated_env):
        assert default_home() == isolated_env


class TestDatabaseConfig:
    def test_from_settings(self, settings):
        config = DatabaseConfig.from_settings(settings)

        assert config.database_file == settings.database_path
        assert config.busy_timeout == 5.0

    def test_in_memory_has_no_file(self):
        assert DatabaseConfig(url="sqlite:///:memory:").database_file is None
