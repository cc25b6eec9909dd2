"""
Competition-change gate.

A league may switch its tracked competition once every 7 days on limited plans
and without restriction on unlimited plans. The cooldown is a rolling window
from the last change, not the Monday-anchored week used by the bet limiter.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import ensure_aware
from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.enums import MemberRole, RuleViolation
from app.repos import league_repo, match_repo, wallet_repo
from app.repos.audit_log_repo import add_audit_log
from app.services.plans import PlanLimit, PlanSummary, get_plan
from app.services.results import RuleResult

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class GateResult(RuleResult):
    days_remaining: Optional[int] = None


def _days_since(changed_at: datetime, now: datetime) -> int:
    elapsed = ensure_aware(now) - ensure_aware(changed_at)
    return int(elapsed.total_seconds() // SECONDS_PER_DAY)


def can_change_competition(
    competition_changed_at: Optional[datetime],
    limit: PlanLimit,
    is_frozen: bool,
    now: datetime
) -> GateResult:
    """
    Decide whether a league may change its competition now.

    Rules apply in order: a frozen wallet always blocks; a league that never
    changed is allowed; unlimited plans are allowed; otherwise at least 7
    whole days must have passed since the last change.

    Args:
        competition_changed_at: Last change time, None if never changed
        limit: Plan's max_changes_week limit
        is_frozen: Wallet freeze flag
        now: Current time

    Returns:
        GateResult with ``days_remaining`` on ``cooldown_active``
    """
    if is_frozen:
        return GateResult.reject(
            RuleViolation.WALLET_FROZEN,
            "League wallet is frozen, add funds to change competition"
        )

    if competition_changed_at is None:
        return GateResult.ok()

    if limit.is_unlimited:
        return GateResult.ok()

    cooldown = settings.competition_change_cooldown_days
    days_since = _days_since(competition_changed_at, now)
    if days_since >= cooldown:
        return GateResult.ok()

    days_remaining = cooldown - days_since
    return GateResult.reject(
        RuleViolation.COOLDOWN_ACTIVE,
        f"Competition can be changed again in {days_remaining} day(s)",
        days_remaining=days_remaining,
    )


def days_until_competition_change(
    competition_changed_at: Optional[datetime],
    limit: PlanLimit,
    now: datetime
) -> Optional[int]:
    """None when the cooldown allows a change now, else the days left."""
    if competition_changed_at is None or limit.is_unlimited:
        return None
    days_since = _days_since(competition_changed_at, now)
    cooldown = settings.competition_change_cooldown_days
    if days_since >= cooldown:
        return None
    return cooldown - days_since


async def change_league_competition(
    session: AsyncSession,
    league_id: UUID,
    competition_id: UUID,
    user_id: UUID,
    now: datetime
) -> GateResult:
    """
    Switch a league to another competition if the gate allows it.

    Args:
        session: Database session
        league_id: League UUID
        competition_id: Target competition UUID
        user_id: Acting user (must be owner or admin of the league)
        now: Current time

    Returns:
        GateResult; the league is updated only when valid
    """
    member = await league_repo.get_member(session, league_id, user_id)
    if member is None:
        return GateResult.reject(RuleViolation.NOT_A_MEMBER, "You are not a member of this league")
    if member.role not in (MemberRole.OWNER.value, MemberRole.ADMIN.value):
        return GateResult.reject(RuleViolation.NOT_AUTHORIZED, "Only league owners and admins can change the competition")

    competition = await match_repo.get_competition_by_id(session, competition_id)
    if competition is None:
        raise NotFoundError("Competition", competition_id)
    if not competition.is_active:
        return GateResult.reject(RuleViolation.COMPETITION_UNAVAILABLE, "Competition is not available")

    wallet = await wallet_repo.get_or_create_wallet(session, league_id)

    try:
        league = await league_repo.get_league_for_update(session, league_id)
        if league is None:
            raise NotFoundError("League", league_id)

        plan = PlanSummary.from_plan(await get_plan(session, league.plan_id))
        gate = can_change_competition(league.competition_changed_at, plan.max_changes_week, wallet.is_frozen, now)
        if not gate.valid:
            await session.rollback()
            return gate

        previous = league.current_competition_id
        league.current_competition_id = competition_id
        league.competition_changed_at = now
        add_audit_log(
            session,
            action="competition_changed",
            details={
                "league_id": str(league_id),
                "from": str(previous) if previous else None,
                "to": str(competition_id),
            },
            user_id=user_id,
            created_at=now,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league_id} switched competition to {competition_id}")
    return GateResult.ok()
