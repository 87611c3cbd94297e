"""
GitHub push webhook: records the push-activity signal used by eligibility.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import get_logger
from jot.infra.database import get_session
from jot.v1.accounts.store import RepositoryStore
from jot.v1.core.exceptions import (
    UnauthorizedError,
    ValidationError,
    create_success_response,
)
from jot.v1.core.security import verify_github_signature

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_repo_store() -> RepositoryStore:
    return RepositoryStore()


@router.post("/github", response_model=dict)
async def github_webhook(
    request: Request,
    x_github_event: str | None = Header(None),
    x_hub_signature_256: str | None = Header(None),
    repo_store: RepositoryStore = Depends(get_repo_store),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Mark a tracked repository as recently pushed."""
    if x_github_event != "push":
        return create_success_response(
            data={"handled": False}, message="Ignored non-push event"
        )

    body = await request.body()
    try:
        payload = json.loads(body)
        github_repo_id = int(payload["repository"]["id"])
        full_name = payload["repository"].get("full_name")
    except (ValueError, KeyError, TypeError) as e:
        raise ValidationError("Invalid push payload", details={"error": str(e)}) from e

    repo = await repo_store.find_by_github_id(session, github_repo_id)
    if repo is None:
        return create_success_response(data={"handled": False}, message="Repo not tracked")

    if repo.webhook_secret and not verify_github_signature(
        repo.webhook_secret, body, x_hub_signature_256
    ):
        logger.warning("Invalid webhook signature", full_name=full_name)
        raise UnauthorizedError("Invalid signature")

    await repo_store.record_push(session, repo.id)

    commit_count = len(payload.get("commits") or [])
    logger.info("Push received", full_name=full_name, commit_count=commit_count)

    return create_success_response(
        data={"handled": True, "repo": full_name, "commits": commit_count}
    )
