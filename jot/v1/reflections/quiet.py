"""
Quiet-day escalation derived from reflection history.
"""

from enum import Enum

from jot.v1.reflections.types import RecentReflection


class QuietTone(str, Enum):
    """How a quiet-day reflection should read."""

    CHECK_IN = "check_in"
    NUDGE = "nudge"
    SIGN_OFF = "sign_off"


def quiet_streak(history: list[RecentReflection]) -> int:
    """
    Count consecutive zero-commit reflections, most recent first.

    Stops at the first reflection that had commits.
    """
    streak = 0
    for reflection in history:
        if reflection.commit_count > 0:
            break
        streak += 1
    return streak


def should_go_silent(history: list[RecentReflection], ceiling: int) -> bool:
    return quiet_streak(history) >= ceiling


def quiet_tone(streak: int) -> QuietTone:
    if streak <= 0:
        return QuietTone.CHECK_IN
    if streak == 1:
        return QuietTone.NUDGE
    return QuietTone.SIGN_OFF
