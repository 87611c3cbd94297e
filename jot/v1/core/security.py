import hashlib
import hmac

from fastapi import Depends, Header

from jot.config.settings import Settings, get_settings
from jot.v1.core.exceptions import UnauthorizedError


def bearer_matches(authorization: str | None, secret: str) -> bool:
    """Constant-time comparison of an Authorization header against a secret."""
    if not authorization:
        return False
    expected = f"Bearer {secret}"
    return hmac.compare_digest(authorization.encode(), expected.encode())


async def verify_cron_secret(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Dependency guarding the cron and job endpoints.

    When CRON_SECRET is unset (development only, enforced by Settings) every
    caller is accepted.
    """
    if not settings.cron_secret:
        return

    if not bearer_matches(authorization, settings.cron_secret):
        raise UnauthorizedError()


def verify_github_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Check an X-Hub-Signature-256 header against the raw request body."""
    if not signature:
        return False
    digest = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature.encode(), digest.encode())


# Convenience type alias for dependency injection
CronAuthDep = Depends(verify_cron_secret)
