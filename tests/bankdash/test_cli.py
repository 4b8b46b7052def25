"""Tests for the BankDash CLI in mock mode."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from bankdash.cli.main import app
from bankdash.config import get_current_profile

runner = CliRunner()


@pytest.fixture
def cache_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "cache" / "connectors.json"
    monkeypatch.setenv("BANKDASH_CACHE__PATH", str(path))
    monkeypatch.setenv("BANKDASH_API__MODE", "mock")
    return path


class TestGlobalOptions:
    @pytest.mark.integration
    def test_profile_option(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["--profile", "alice", "cache", "show"])

        assert result.exit_code == 0
        assert get_current_profile() == "alice"

    @pytest.mark.integration
    @pytest.mark.parametrize("profile", ["bad profile", "a/b"])
    def test_invalid_profile(self, cache_file: Path, profile: str) -> None:
        result = runner.invoke(app, ["--profile", profile, "cache", "show"])
        assert result.exit_code != 0

    @pytest.mark.integration
    def test_incomplete_direct_config_exits(
        self, cache_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BANKDASH_API__MODE", "direct")

        result = runner.invoke(app, ["connections", "list"])

        assert result.exit_code == 1


class TestConnectionsCommands:
    @pytest.mark.integration
    def test_list(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "list"])

        assert result.exit_code == 0
        assert "BoursoBank" in result.stdout
        assert "Fortuneo" in result.stdout
        assert "#8" in result.stdout
        assert cache_file.exists()

    @pytest.mark.integration
    def test_list_duplicates_filter(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "list", "--filter", "duplicates"])

        assert result.exit_code == 0
        assert "BoursoBank" not in result.stdout

    @pytest.mark.integration
    def test_list_rejects_unknown_filter(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "list", "--filter", "bogus"])
        assert result.exit_code != 0

    @pytest.mark.integration
    def test_summary(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "summary"])

        assert result.exit_code == 0
        assert "Total:       3" in result.stdout
        assert "Healthy:     3" in result.stdout

    @pytest.mark.integration
    def test_duplicates(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "duplicates"])

        assert result.exit_code == 0
        assert "Group" not in result.stdout

    @pytest.mark.integration
    def test_delete(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "delete", "8", "--yes"])
        assert result.exit_code == 0

    @pytest.mark.integration
    def test_delete_unknown_connection_fails(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "delete", "999", "--yes"])
        assert result.exit_code == 1

    @pytest.mark.integration
    def test_delete_requires_confirmation(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["connections", "delete", "8"], input="n\n")
        assert result.exit_code == 1


class TestSyncCommands:
    @pytest.mark.integration
    def test_sync_all(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["sync", "all"])

        assert result.exit_code == 0
        for connection_id in (8, 17, 25):
            assert f"#{connection_id}" in result.stdout

    @pytest.mark.integration
    def test_sync_one(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["sync", "one", "17"])

        assert result.exit_code == 0
        assert "Last update" in result.stdout

    @pytest.mark.integration
    def test_sync_unknown_connection_fails(self, cache_file: Path) -> None:
        result = runner.invoke(app, ["sync", "one", "999"])
        assert result.exit_code == 1


class TestCacheCommands:
    @pytest.mark.integration
    def test_refresh_show_clear(self, cache_file: Path) -> None:
        empty = runner.invoke(app, ["cache", "show"])
        assert empty.exit_code == 0
        assert "Empty" in empty.stdout

        refreshed = runner.invoke(app, ["cache", "refresh"])
        assert refreshed.exit_code == 0
        assert cache_file.exists()

        shown = runner.invoke(app, ["cache", "show"])
        assert shown.exit_code == 0
        assert "Domain:     mock" in shown.stdout
        assert "Connectors: 3" in shown.stdout
        assert "Valid:      yes" in shown.stdout

        cleared = runner.invoke(app, ["cache", "clear"])
        assert cleared.exit_code == 0
        assert not cache_file.exists()
