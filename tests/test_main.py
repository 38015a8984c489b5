"""
Tests for the CLI entry point.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from tito_sync.config import Settings
from tito_sync.exceptions import PersistenceError
from tito_sync.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _keep_test_logging():
    """Leave pytest's log handlers alone."""
    with patch("tito_sync.main.configure_logging"):
        yield


def _settings(**overrides) -> Settings:
    values = {
        "tito_account_id": "dddperth",
        "tito_event_id": "2026",
        "tito_api_key": "k",
        "conference_instance": "dddperth-2026",
    }
    values.update(overrides)
    return Settings(**values)


class TestSyncCommand:
    def test_missing_configuration_exits_2(self) -> None:
        with patch("tito_sync.main.settings", _settings(tito_api_key="")):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 2
        assert "TITO_API_KEY" in result.output

    def test_cutoff_passed_is_noop(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(days=2)

        with patch("tito_sync.main.settings", _settings(stop_syncing_from=past)):
            with patch("tito_sync.main.DatabaseStorage") as storage:
                result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        assert "cutoff date passed" in result.output
        storage.assert_not_called()

    def test_persistence_failure_exits_1(self) -> None:
        """Test a failed bulk write prints the failure and exits 1."""

        def _fail(coro):
            coro.close()
            raise PersistenceError("dddperth-2026", 3, "connection refused")

        with patch("tito_sync.main.settings", _settings()):
            with patch("tito_sync.main.asyncio.run", side_effect=_fail):
                result = runner.invoke(app, ["sync", "--force"])

        assert result.exit_code == 1
        assert "Sync failed" in result.output


class TestStatusCommand:
    def test_status_without_partition(self) -> None:
        with patch("tito_sync.main.settings", _settings(conference_instance="")):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "unset" in result.output
