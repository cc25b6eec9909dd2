"""
Plan registry and plan-limit checks.

Plans store ``-1`` for "unlimited". That sentinel stays in the rows and in API
output; inside the services every limit is wrapped in ``PlanLimit`` as soon as
a plan is loaded, so callers never compare against ``-1`` themselves.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.league import League
from app.models.plan import Plan, UNLIMITED
from app.repos import plan_repo, league_repo, wallet_repo

logger = logging.getLogger(__name__)


class PlanLimit(BaseModel):
    """A numeric plan limit: limited(n) or unlimited (``limit is None``)"""
    limit: Optional[int] = None

    @classmethod
    def limited(cls, n: int) -> "PlanLimit":
        return cls(limit=n)

    @classmethod
    def unlimited(cls) -> "PlanLimit":
        return cls(limit=None)

    @classmethod
    def from_raw(cls, raw: int) -> "PlanLimit":
        if raw == UNLIMITED:
            return cls.unlimited()
        return cls.limited(raw)

    @property
    def is_unlimited(self) -> bool:
        return self.limit is None

    def allows(self, used: int) -> bool:
        """True when one more use fits under the limit."""
        return self.is_unlimited or used < self.limit

    def to_raw(self) -> int:
        return UNLIMITED if self.is_unlimited else self.limit

    def remaining(self, used: int) -> int:
        """Remaining uses, or -1 for unlimited (display sentinel)."""
        if self.is_unlimited:
            return UNLIMITED
        return max(0, self.limit - used)


class PlanSummary(BaseModel):
    """A loaded plan with its limits resolved"""
    id: str
    name: str
    max_members: int
    max_competitions: PlanLimit
    max_changes_week: PlanLimit
    monthly_price: Decimal

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanSummary":
        return cls(
            id=plan.id,
            name=plan.name,
            max_members=plan.max_members,
            max_competitions=PlanLimit.from_raw(plan.max_competitions),
            max_changes_week=PlanLimit.from_raw(plan.max_changes_week),
            monthly_price=Decimal(plan.monthly_price),
        )

    @property
    def is_free(self) -> bool:
        return self.monthly_price == 0


class PlanLimitsStatus(BaseModel):
    """Usage of a league against its plan"""
    plan_id: str
    members_used: int
    members_limit: int
    can_add_member: bool
    can_change_competition: bool
    days_until_competition_change: Optional[int] = None
    weekly_changes_limit: int
    is_frozen: bool


async def get_plan(session: AsyncSession, plan_id: str) -> Plan:
    """
    Get a plan by key.

    Args:
        session: Database session
        plan_id: Plan key

    Returns:
        Plan instance

    Raises:
        NotFoundError: if no such plan exists
    """
    plan = await plan_repo.get_plan_by_id(session, plan_id)
    if plan is None:
        raise NotFoundError("Plan", plan_id)
    return plan


async def list_plans(session: AsyncSession) -> List[Plan]:
    return await plan_repo.list_plans(session)


async def get_league_plan(session: AsyncSession, league: League) -> Optional[PlanSummary]:
    """Resolve a league's plan, or None when the plan row is missing."""
    plan = await plan_repo.get_plan_by_id(session, league.plan_id)
    if plan is None:
        logger.warning(f"League {league.id} references unknown plan {league.plan_id}")
        return None
    return PlanSummary.from_plan(plan)


async def can_add_member(session: AsyncSession, league_id: UUID) -> bool:
    """
    Check whether a league has room for one more member.

    Args:
        session: Database session
        league_id: League UUID

    Returns:
        True when the member count is below the plan's max_members
    """
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    plan = await get_plan(session, league.plan_id)
    members = await league_repo.count_members(session, league_id)
    return members < plan.max_members


async def check_plan_limits(session: AsyncSession, league_id: UUID, now: datetime) -> PlanLimitsStatus:
    """
    Report a league's usage against its plan.

    Args:
        session: Database session
        league_id: League UUID
        now: Current time

    Returns:
        PlanLimitsStatus with member usage and competition-change state
    """
    from app.services.competition_gate import can_change_competition, days_until_competition_change

    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    plan = PlanSummary.from_plan(await get_plan(session, league.plan_id))
    wallet = await wallet_repo.get_or_create_wallet(session, league_id)
    members = await league_repo.count_members(session, league_id)

    gate = can_change_competition(league.competition_changed_at, plan.max_changes_week, wallet.is_frozen, now)

    return PlanLimitsStatus(
        plan_id=plan.id,
        members_used=members,
        members_limit=plan.max_members,
        can_add_member=members < plan.max_members,
        can_change_competition=gate.valid,
        days_until_competition_change=days_until_competition_change(
            league.competition_changed_at, plan.max_changes_week, now
        ),
        weekly_changes_limit=plan.max_changes_week.to_raw(),
        is_frozen=wallet.is_frozen,
    )


def default_weekly_limit() -> PlanLimit:
    """Fallback limit when a league's plan cannot be resolved."""
    return PlanLimit.limited(settings.default_weekly_bet_limit)
