"""API Endpoint Wrappers"""

from typing import Any

from ..utils.config_manager import config
from .base import APIClient


class JotClient:
    """High-level client with one method per endpoint"""

    def __init__(self, base_url: str | None = None, cron_secret: str | None = None):
        api_config = config.load_config().get("api", {})
        secret = cron_secret or api_config.get("cron_secret")
        headers = {"Authorization": f"Bearer {secret}"} if secret else {}

        self.api = APIClient(
            base_url=base_url or api_config.get("base_url", "http://localhost:8000"),
            timeout=float(api_config.get("timeout", 300)),
            headers=headers,
        )

    def __enter__(self):
        self.api.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.api.__exit__(exc_type, exc_val, exc_tb)

    def health_check(self) -> dict[str, Any]:
        return self.api.get("/healthz")

    # Cron
    def schedule_reflections(self) -> dict[str, Any]:
        return self.api.post("/cron/schedule-reflections")

    def process_jobs(self) -> dict[str, Any]:
        return self.api.post("/cron/process-jobs")

    # Jobs
    def list_jobs(
        self,
        status: list[str] | None = None,
        repo_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if status:
            params["status"] = status
        if repo_id:
            params["repo_id"] = repo_id
        return self.api.get("/jobs", params)

    def get_job(self, job_id: str) -> dict[str, Any]:
        return self.api.get(f"/jobs/{job_id}")

    def job_stats(self) -> dict[str, Any]:
        return self.api.get("/jobs/stats/overview")
