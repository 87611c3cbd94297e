"""Tests for CLI commands"""

from unittest.mock import Mock, patch

import httpx
import pytest
from typer.testing import CliRunner

from cli.client.base import APIClient, JotAPIError
from cli.main import app
from cli.utils.config_manager import ConfigManager


@pytest.fixture
def runner():
    """CLI test runner"""
    return CliRunner()


@pytest.fixture
def mock_client():
    """Mock API client usable as a context manager"""
    client = Mock()
    client.__enter__ = Mock(return_value=client)
    client.__exit__ = Mock(return_value=None)
    return client


@pytest.fixture
def temp_config(tmp_path):
    manager = ConfigManager(config_dir=tmp_path)
    with patch("cli.commands.config.config", manager):
        yield manager


class TestMainCommands:
    def test_version_flag(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "jot CLI v1.0.0" in result.stdout

    @patch("cli.main.JotClient")
    def test_status_healthy(self, mock_client_class, runner, mock_client):
        mock_client.health_check.return_value = {
            "ok": True,
            "version": "1.0.0",
            "environment": "development",
            "database": {"connected": True},
            "queue": {"queue_depth": 4, "stale_jobs": 0},
        }
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Healthy" in result.stdout

    @patch("cli.main.JotClient")
    def test_status_degraded(self, mock_client_class, runner, mock_client):
        mock_client.health_check.return_value = {
            "ok": False,
            "database": {"connected": False},
            "queue": None,
        }
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "Degraded" in result.stdout

    @patch("cli.main.JotClient")
    def test_status_connection_failure(self, mock_client_class, runner, mock_client):
        mock_client.health_check.side_effect = JotAPIError("Connection failed")
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "Connection Failed" in result.stdout


class TestCronCommands:
    @patch("cli.commands.cron.JotClient")
    def test_schedule(self, mock_client_class, runner, mock_client):
        mock_client.schedule_reflections.return_value = {
            "repos_checked": 3,
            "jobs_created": 2,
            "skipped": 1,
            "already_queued": 0,
            "skip_reasons": {"outside_window": 1},
        }
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["cron", "schedule"])

        assert result.exit_code == 0
        assert "jobs created" in result.stdout

    @patch("cli.commands.cron.JotClient")
    def test_work_stops_when_queue_is_empty(self, mock_client_class, runner, mock_client):
        mock_client.process_jobs.side_effect = [
            {"processed": 2, "failed": 0, "recovered": 0, "elapsed_ms": 900},
            {"processed": 0, "failed": 0, "recovered": 0, "elapsed_ms": 20},
        ]
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["cron", "work", "--repeat", "5"])

        assert result.exit_code == 0
        assert mock_client.process_jobs.call_count == 2

    @patch("cli.commands.cron.JotClient")
    def test_work_failure(self, mock_client_class, runner, mock_client):
        mock_client.process_jobs.side_effect = JotAPIError("API Error 401: Unauthorized")
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["cron", "work"])

        assert result.exit_code == 1


class TestJobsCommands:
    @patch("cli.commands.jobs.JotClient")
    def test_list_empty(self, mock_client_class, runner, mock_client):
        mock_client.list_jobs.return_value = {"jobs": [], "total": 0}
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["jobs", "list", "--limit", "10"])

        assert result.exit_code == 0
        assert "No jobs found" in result.stdout

    @patch("cli.commands.jobs.JotClient")
    def test_list_passes_filters(self, mock_client_class, runner, mock_client):
        mock_client.list_jobs.return_value = {
            "jobs": [
                {
                    "id": "6c1f0a3e-0000-0000-0000-000000000001",
                    "repo_id": "6c1f0a3e-0000-0000-0000-000000000002",
                    "work_date": "2025-01-10",
                    "status": "failed",
                    "attempts": 3,
                    "max_attempts": 3,
                    "last_error": "model overloaded",
                    "created_at": "2025-01-11T02:05:00+00:00",
                }
            ],
            "total": 1,
        }
        mock_client_class.return_value = mock_client

        result = runner.invoke(
            app, ["jobs", "list", "--status", "failed", "--limit", "10"]
        )

        assert result.exit_code == 0
        mock_client.list_jobs.assert_called_once_with(
            status=["failed"], repo_id=None, limit=10, offset=0
        )

    def test_list_rejects_unknown_status(self, runner):
        result = runner.invoke(app, ["jobs", "list", "--status", "exploded"])

        assert result.exit_code == 1
        assert "Unknown status" in result.stdout

    @patch("cli.commands.jobs.JotClient")
    def test_show_missing_job(self, mock_client_class, runner, mock_client):
        mock_client.get_job.side_effect = JotAPIError("API Error 404: Job not found")
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["jobs", "show", "nope"])

        assert result.exit_code == 1
        assert "Failed to fetch job" in result.stdout

    @patch("cli.commands.jobs.JotClient")
    def test_stats(self, mock_client_class, runner, mock_client):
        mock_client.job_stats.return_value = {
            "total_jobs": 5,
            "by_status": {"pending": 2, "completed": 3},
            "queue_depth": 2,
            "stale_jobs": 0,
            "failed_last_day": 0,
        }
        mock_client_class.return_value = mock_client

        result = runner.invoke(app, ["jobs", "stats"])

        assert result.exit_code == 0


class TestConfigCommands:
    def test_set_and_get(self, runner, temp_config):
        result = runner.invoke(app, ["config", "set", "api.base_url", "https://jot.example"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["config", "get", "api.base_url"])
        assert result.exit_code == 0
        assert "https://jot.example" in result.stdout
        assert temp_config.get("api.base_url") == "https://jot.example"

    def test_set_rejects_bad_url(self, runner, temp_config):
        result = runner.invoke(app, ["config", "set", "api.base_url", "jot.example"])
        assert result.exit_code == 1

    def test_secret_is_masked(self, runner, temp_config):
        result = runner.invoke(app, ["config", "set", "api.cron_secret", "supersecretvalue"])

        assert result.exit_code == 0
        assert "supersecretvalue" not in result.stdout
        assert temp_config.get("api.cron_secret") == "supersecretvalue"

    def test_get_missing_key(self, runner, temp_config):
        result = runner.invoke(app, ["config", "get", "api.nothing"])
        assert result.exit_code == 1

    def test_reset(self, runner, temp_config):
        temp_config.set("display.jobs_per_page", 50)

        result = runner.invoke(app, ["config", "reset", "--yes"])

        assert result.exit_code == 0
        assert temp_config.get("display.jobs_per_page") == 20


class TestAPIClient:
    def test_unwraps_envelope_and_sends_bearer(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "data": {"processed": 1}})

        client = APIClient(
            base_url="http://jot.test",
            headers={"Authorization": "Bearer s3cret"},
            transport=httpx.MockTransport(handler),
        )

        assert client.post("/cron/process-jobs") == {"processed": 1}
        assert seen[0].url.path == "/v1/cron/process-jobs"
        assert seen[0].headers["Authorization"] == "Bearer s3cret"

    def test_error_envelope_raises(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                401, json={"ok": False, "error": {"message": "Unauthorized", "code": 401}}
            )
        )
        client = APIClient(base_url="http://jot.test", transport=transport)

        with pytest.raises(JotAPIError, match="401: Unauthorized"):
            client.get("/jobs")
