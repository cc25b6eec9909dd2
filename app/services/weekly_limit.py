"""
Weekly bet limiter.

Counts a user's bets in one league over the current calendar week (Monday to
Sunday, see ``app.core.calendar``) against the plan's ``max_changes_week``.
Nothing is stored about the week: the count resets purely as a function of
``now``.
"""

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar import week_start, week_end
from app.core.errors import NotFoundError
from app.repos import bet_repo, league_repo
from app.services.plans import PlanLimit, get_league_plan, default_weekly_limit

logger = logging.getLogger(__name__)


class WeeklyBetStatus(BaseModel):
    used: int
    limit: int
    remaining: int
    is_unlimited: bool
    resets_at: datetime


def build_weekly_status(used: int, limit: PlanLimit, now: datetime) -> WeeklyBetStatus:
    """
    Combine a usage count with a plan limit.

    Unlimited plans report ``limit=-1`` and ``remaining=-1``.
    """
    return WeeklyBetStatus(
        used=used,
        limit=limit.to_raw(),
        remaining=limit.remaining(used),
        is_unlimited=limit.is_unlimited,
        resets_at=week_end(now),
    )


async def get_weekly_bet_status(
    session: AsyncSession,
    user_id: UUID,
    league_id: UUID,
    now: datetime
) -> WeeklyBetStatus:
    """
    Get a user's bet usage for the current week in a league.

    Args:
        session: Database session
        user_id: User UUID
        league_id: League UUID
        now: Current time

    Returns:
        WeeklyBetStatus
    """
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)

    plan = await get_league_plan(session, league)
    limit = plan.max_changes_week if plan is not None else default_weekly_limit()

    used = await bet_repo.count_bets_in_range(session, user_id, league_id, week_start(now), week_end(now))
    return build_weekly_status(used, limit, now)


def can_place_bet(status: WeeklyBetStatus) -> bool:
    """Unlimited plans always allow; otherwise allowed while remaining > 0."""
    return status.is_unlimited or status.remaining > 0
