"""
GitHub REST client implementing the commit source protocol.
"""

from datetime import datetime
from typing import Any

import httpx

from jot.config.logging import get_logger
from jot.config.settings import Settings
from jot.v1.core.exceptions import CommitSourceError
from jot.v1.reflections.types import Commit

logger = get_logger(__name__)

GITHUB_ACCEPT = "application/vnd.github.v3+json"
PAGE_SIZE = 100


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def commit_from_payload(payload: dict[str, Any]) -> Commit:
    """Map a GitHub commit object (list or detail shape) onto a Commit."""
    meta = payload.get("commit", {})
    author = meta.get("author") or {}
    stats = payload.get("stats") or {}
    return Commit(
        sha=payload["sha"],
        message=meta.get("message", ""),
        author_name=author.get("name", "unknown"),
        authored_at=_parse_timestamp(author["date"]),
        url=payload.get("html_url"),
        additions=stats.get("additions"),
        deletions=stats.get("deletions"),
        files=[f["filename"] for f in payload.get("files") or []],
    )


class GitHubCommitSource:
    """Reads commits from every branch of a repository."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    def _client(self, credential: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.github_api_url,
            timeout=self.settings.github_timeout_s,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {credential}",
                "Accept": GITHUB_ACCEPT,
            },
        )

    async def fetch_commits(
        self, credential: str, full_name: str, since: datetime
    ) -> list[Commit]:
        async with self._client(credential) as client:
            try:
                response = await client.get(
                    f"/repos/{full_name}/branches", params={"per_page": PAGE_SIZE}
                )
            except httpx.HTTPError as e:
                raise CommitSourceError(f"GitHub request failed: {e}") from e

            if response.status_code == 409:
                logger.info("Repository is empty", full_name=full_name)
                return []
            if response.is_error:
                raise CommitSourceError(
                    f"GitHub API error fetching branches: {response.status_code}",
                    upstream_status=response.status_code,
                    details={"full_name": full_name},
                )

            seen: dict[str, Commit] = {}
            for branch in response.json():
                name = branch["name"]
                try:
                    branch_response = await client.get(
                        f"/repos/{full_name}/commits",
                        params={
                            "sha": name,
                            "since": since.isoformat(),
                            "per_page": PAGE_SIZE,
                        },
                    )
                except httpx.HTTPError as e:
                    logger.warning("Skipping branch", branch=name, error=str(e))
                    continue

                if branch_response.is_error:
                    logger.warning(
                        "Skipping branch", branch=name, status=branch_response.status_code
                    )
                    continue

                for payload in branch_response.json():
                    if payload["sha"] not in seen:
                        seen[payload["sha"]] = commit_from_payload(payload)

        commits = sorted(seen.values(), key=lambda c: c.authored_at, reverse=True)
        logger.info("Fetched commits", full_name=full_name, commit_count=len(commits))
        return commits

    async def fetch_commit_detail(
        self, credential: str, full_name: str, sha: str
    ) -> Commit:
        async with self._client(credential) as client:
            try:
                response = await client.get(f"/repos/{full_name}/commits/{sha}")
            except httpx.HTTPError as e:
                raise CommitSourceError(f"GitHub request failed: {e}") from e

        if response.is_error:
            raise CommitSourceError(
                f"GitHub API error: {response.status_code}",
                upstream_status=response.status_code,
                details={"full_name": full_name, "sha": sha},
            )
        return commit_from_payload(response.json())
