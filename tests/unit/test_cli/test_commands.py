"""Tests for the notification-service CLI.

Testing approach:
- Uses Click's CliRunner for command invocation
- Mocks the database and audit store so no real database is touched
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
import uuid

from click.testing import CliRunner
import pytest

from notification_service import __version__
from notification_service.cli.main import cli


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def mock_store():
    store = MagicMock()
    store.count_total = AsyncMock(return_value=5)
    store.count_success = AsyncMock(return_value=3)
    store.count_failed = AsyncMock(return_value=2)
    store.count_pending = AsyncMock(return_value=0)
    store.list_failed = AsyncMock(return_value=[])
    store.delete_older_than = AsyncMock(return_value=4)
    return store


@pytest.fixture
def mock_database():
    database = MagicMock()
    database.dispose = AsyncMock()
    return database


@pytest.fixture
def patched_records(mock_store, mock_database):
    with (
        patch("notification_service.cli.commands.records.Database") as database_cls,
        patch("notification_service.cli.commands.records.SqlAlchemyAuditStore", return_value=mock_store),
    ):
        database_cls.from_settings.return_value = mock_database
        yield mock_store


@pytest.mark.unit
class TestCliGroup:
    def test_version(self, cli_runner):
        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, cli_runner):
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for name in ("serve", "consumer", "records"):
            assert name in result.output


@pytest.mark.unit
class TestRecordsCommands:
    def test_stats(self, cli_runner, patched_records, mock_database):
        result = cli_runner.invoke(cli, ["records", "stats"])

        assert result.exit_code == 0, result.output
        assert "Total" in result.output
        assert "5" in result.output
        assert "Failed" in result.output
        mock_database.dispose.assert_awaited_once()

    def test_failed_without_records(self, cli_runner, patched_records):
        result = cli_runner.invoke(cli, ["records", "failed"])

        assert result.exit_code == 0
        assert "No failed deliveries" in result.output
        patched_records.list_failed.assert_awaited_once_with(limit=20)

    def test_failed_lists_records(self, cli_runner, patched_records):
        record = MagicMock()
        record.id = uuid.uuid4()
        record.created_at = datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)
        record.channel = "email"
        record.recipient = "user@example.com"
        record.error_message = "Recipient is empty"
        patched_records.list_failed.return_value = [record]

        result = cli_runner.invoke(cli, ["records", "failed", "--limit", "5"])

        assert result.exit_code == 0
        assert str(record.id) in result.output
        assert "Recipient is empty" in result.output
        patched_records.list_failed.assert_awaited_once_with(limit=5)

    def test_cleanup_with_yes(self, cli_runner, patched_records):
        result = cli_runner.invoke(cli, ["records", "cleanup", "--days", "7", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Deleted 4 record(s) older than 7 day(s)" in result.output
        cutoff = patched_records.delete_older_than.await_args.args[0]
        expected = datetime.now(UTC) - timedelta(days=7)
        assert abs((cutoff - expected).total_seconds()) < 60

    def test_cleanup_aborted(self, cli_runner, patched_records):
        result = cli_runner.invoke(cli, ["records", "cleanup", "--days", "7"], input="n\n")

        assert result.exit_code == 0
        assert "Aborted" in result.output
        patched_records.delete_older_than.assert_not_awaited()

    def test_cleanup_defaults_to_retention(self, cli_runner, patched_records, monkeypatch):
        monkeypatch.setenv("DISPATCH_RETENTION_DAYS", "30")

        result = cli_runner.invoke(cli, ["records", "cleanup", "--yes"])

        assert result.exit_code == 0, result.output
        assert "older than 30 day(s)" in result.output


@pytest.mark.unit
class TestServeCommand:
    def test_serve_runs_app_factory(self, cli_runner):
        with patch("notification_service.cli.commands.server.uvicorn.run") as run:
            result = cli_runner.invoke(cli, ["serve", "--host", "127.0.0.1", "--port", "9000", "--workers", "2"])

        assert result.exit_code == 0, result.output
        args, kwargs = run.call_args
        assert args == ("notification_service.app.main:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000
        assert kwargs["workers"] == 2

    def test_reload_forces_single_worker(self, cli_runner):
        with patch("notification_service.cli.commands.server.uvicorn.run") as run:
            cli_runner.invoke(cli, ["serve", "--reload", "--workers", "4"])

        assert run.call_args.kwargs["workers"] == 1


@pytest.mark.unit
class TestConsumerCommand:
    def test_requires_rabbitmq(self, cli_runner, monkeypatch):
        monkeypatch.setenv("RABBIT_ENABLED", "false")

        result = cli_runner.invoke(cli, ["consumer", "run"])

        assert result.exit_code == 1
        assert "RabbitMQ is not enabled" in result.output
