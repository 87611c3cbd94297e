"""
Eligibility rules deciding whether a repository should get a reflection job.

Everything here is pure: it looks only at a repository snapshot and the
current instant. The scheduler applies the store-backed checks (existing
reflection, existing job) after these rules pass.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jot.config.logging import get_logger
from jot.config.settings import Settings
from jot.v1.accounts.models import SubscriptionStatus
from jot.v1.accounts.store import RepoSnapshot

logger = get_logger(__name__)


class SkipReason(str, Enum):
    """Why a repository did not get a job this pass."""

    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    TRIAL_EXPIRED = "trial_expired"
    MISSING_CREDENTIALS = "missing_credentials"
    OUTSIDE_WINDOW = "outside_window"
    ACTIVELY_PUSHING = "actively_pushing"
    REFLECTION_EXISTS = "reflection_exists"
    ALREADY_QUEUED = "already_queued"
    ERROR = "error"


@dataclass(frozen=True)
class EligibilityDecision:
    eligible: bool
    work_date: date | None = None
    reason: SkipReason | None = None

    @classmethod
    def create(cls, work_date: date) -> "EligibilityDecision":
        return cls(eligible=True, work_date=work_date)

    @classmethod
    def skip(
        cls, reason: SkipReason, work_date: date | None = None
    ) -> "EligibilityDecision":
        return cls(eligible=False, work_date=work_date, reason=reason)


def resolve_timezone(name: str | None, default: str) -> ZoneInfo:
    """Look up an IANA zone, falling back to the default for unknown names."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone, using default", timezone=name, default=default)
    return ZoneInfo(default)


def in_reflection_window(hour: int, start_hour: int, end_hour: int) -> bool:
    """Whether a local hour falls in the window, which may wrap midnight."""
    if start_hour <= end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def compute_work_date(local_now: datetime, end_hour: int) -> date:
    """
    The logical day a reflection produced now belongs to.

    Before the window closes in the early morning, work is attributed to the
    previous local day.
    """
    if local_now.hour < end_hour:
        return (local_now - timedelta(days=1)).date()
    return local_now.date()


class EligibilityEvaluator:
    """Applies the ordered veto rules to one repository snapshot."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def evaluate(self, repo: RepoSnapshot, now: datetime) -> EligibilityDecision:
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)

        if repo.subscription_status == SubscriptionStatus.CANCELLED.value:
            return EligibilityDecision.skip(SkipReason.SUBSCRIPTION_CANCELLED)

        if (
            repo.subscription_status == SubscriptionStatus.TRIAL.value
            and repo.trial_ends_at is not None
            and repo.trial_ends_at < now
        ):
            return EligibilityDecision.skip(SkipReason.TRIAL_EXPIRED)

        if not repo.access_token:
            return EligibilityDecision.skip(SkipReason.MISSING_CREDENTIALS)

        tz = resolve_timezone(repo.timezone, self.settings.default_timezone)
        local_now = now.astimezone(tz)

        if not in_reflection_window(
            local_now.hour,
            self.settings.reflection_window_start_hour,
            self.settings.reflection_window_end_hour,
        ):
            return EligibilityDecision.skip(SkipReason.OUTSIDE_WINDOW)

        work_date = compute_work_date(local_now, self.settings.reflection_window_end_hour)

        if repo.has_push_signal and repo.last_push_at is not None:
            idle_for = now - repo.last_push_at
            if idle_for < timedelta(minutes=self.settings.inactivity_threshold_minutes):
                return EligibilityDecision.skip(SkipReason.ACTIVELY_PUSHING, work_date)

        return EligibilityDecision.create(work_date)
