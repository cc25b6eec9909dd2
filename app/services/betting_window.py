"""
Betting window policy.

A match accepts bets from kickoff - 7 days (inclusive) until kickoff - 10
minutes (exclusive). The window is global and does not depend on the league
plan.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from app.core.clock import ensure_aware
from app.core.config import settings
from app.models.enums import RuleViolation
from app.services.results import RuleResult

SECONDS_PER_DAY = 86400


class WindowResult(RuleResult):
    """Betting window check with the boundaries that caused a rejection"""
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None
    days_until_open: Optional[int] = None


def calculate_opens_at(match_start_time: datetime) -> datetime:
    return ensure_aware(match_start_time) - timedelta(days=settings.betting_window_days)


def calculate_closes_at(match_start_time: datetime) -> datetime:
    """Closing time of bets and challenges for a match: kickoff minus 10 minutes."""
    return ensure_aware(match_start_time) - timedelta(minutes=settings.betting_close_minutes)


def is_bettable(match_start_time: datetime, now: datetime) -> WindowResult:
    """
    Decide whether a match currently accepts new bets.

    Args:
        match_start_time: Kickoff time
        now: Current time

    Returns:
        WindowResult; on ``too_early`` it carries ``days_until_open`` (ceiling
        of the remaining days) and ``opens_at``, on ``window_closed`` it
        carries ``closes_at``
    """
    now = ensure_aware(now)
    opens_at = calculate_opens_at(match_start_time)
    closes_at = calculate_closes_at(match_start_time)

    if now < opens_at:
        days = math.ceil((opens_at - now).total_seconds() / SECONDS_PER_DAY)
        return WindowResult.reject(
            RuleViolation.TOO_EARLY,
            f"Bets open {days} day(s) before the match",
            opens_at=opens_at,
            days_until_open=days,
        )

    if now >= closes_at:
        return WindowResult.reject(
            RuleViolation.WINDOW_CLOSED,
            f"Bets closed {settings.betting_close_minutes} minutes before kickoff",
            closes_at=closes_at,
        )

    return WindowResult.ok()
