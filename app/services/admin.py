"""
Admin dashboard and moderation operations
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar import week_start
from app.core.clock import ensure_aware
from app.core.errors import NotFoundError
from app.models.audit_log import ADMIN_ACTOR
from app.models.bet import Bet
from app.models.enums import BetStatus, RuleViolation, UserRole
from app.models.league import League
from app.models.user import User
from app.repos import bet_repo, league_repo, user_repo, wallet_repo
from app.repos.audit_log_repo import add_audit_log, get_last_audit_log
from app.services.results import RuleResult
from app.services.stats import TopBettor, get_top_bettors, win_rate

logger = logging.getLogger(__name__)

# Actions recorded by the scheduled tasks
PAYMENTS_JOB = "job_process_due_payments"
CHALLENGES_JOB = "job_close_expired_challenges"
JOB_ACTIONS = (PAYMENTS_JOB, CHALLENGES_JOB)


class DashboardStats(BaseModel):
    users_total: int
    users_active: int
    users_admins: int
    users_new_this_week: int
    leagues_total: int
    leagues_active: int
    leagues_frozen: int
    bets_total: int
    bets_pending: int
    points_wagered: int
    last_job_runs: Dict[str, Optional[datetime]]


class BetsStats(BaseModel):
    bets_by_status: Dict[str, int]
    total_points_wagered: int
    win_rate: int
    top_bettors: List[TopBettor]


async def _count(session: AsyncSession, column, *filters) -> int:
    return (await session.scalar(select(func.count(column)).where(*filters))) or 0


async def get_dashboard_stats(session: AsyncSession, now: datetime) -> DashboardStats:
    """
    Counters for the admin dashboard.

    Args:
        session: Database session
        now: Current time (start of the week for "new users")

    Returns:
        DashboardStats
    """
    last_runs = {}
    for action in JOB_ACTIONS:
        entry = await get_last_audit_log(session, action)
        last_runs[action] = ensure_aware(entry.created_at) if entry else None

    return DashboardStats(
        users_total=await _count(session, User.id),
        users_active=await _count(session, User.id, User.is_active.is_(True)),
        users_admins=await _count(session, User.id, User.role == UserRole.ADMIN.value),
        users_new_this_week=await _count(session, User.id, User.created_at >= week_start(now)),
        leagues_total=await _count(session, League.id),
        leagues_active=await _count(session, League.id, League.is_active.is_(True)),
        leagues_frozen=await wallet_repo.count_frozen_wallets(session),
        bets_total=await _count(session, Bet.id),
        bets_pending=await _count(session, Bet.id, Bet.status == BetStatus.PENDING.value),
        points_wagered=await bet_repo.sum_bet_amounts(session),
        last_job_runs=last_runs,
    )


async def list_users(
    session: AsyncSession,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[bool] = None
):
    """Paginated user listing; returns (users, total)."""
    return await user_repo.get_users(
        session, limit=limit, offset=(page - 1) * limit, search=search, role=role, is_active=is_active
    )


async def list_leagues(
    session: AsyncSession,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    is_active: Optional[bool] = None
):
    """Paginated league listing; returns (leagues, total)."""
    return await league_repo.get_leagues(
        session, limit=limit, offset=(page - 1) * limit, search=search, is_active=is_active
    )


async def update_user(
    session: AsyncSession,
    admin_id: UUID,
    user_id: UUID,
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    now: Optional[datetime] = None
) -> User:
    """
    Change a user's role or active flag.

    Args:
        session: Database session
        admin_id: Acting admin UUID
        user_id: Target user UUID
        role: New role (optional)
        is_active: New active flag (optional)
        now: Current time (audit timestamp)

    Returns:
        Updated User
    """
    user = await user_repo.update_user(session, user_id, role=role, is_active=is_active)
    if user is None:
        raise NotFoundError("User", user_id)

    add_audit_log(
        session,
        action="user_updated",
        details={"user_id": str(user_id), "role": role, "is_active": is_active},
        actor=ADMIN_ACTOR,
        user_id=admin_id,
        created_at=now,
    )
    await session.commit()
    logger.info(f"Admin {admin_id} updated user {user_id}: role={role} is_active={is_active}")
    return user


async def delete_user(session: AsyncSession, admin_id: UUID, user_id: UUID, now: Optional[datetime] = None) -> RuleResult:
    """
    Delete a user account.

    Refused while the user still owns a league (soft-deleted ones included);
    ownership has to be transferred first.
    """
    user = await user_repo.get_user_by_id(session, user_id)
    if user is None:
        raise NotFoundError("User", user_id)

    owned = await league_repo.count_leagues_owned_by(session, user_id)
    if owned:
        return RuleResult.reject(
            RuleViolation.USER_OWNS_LEAGUES,
            f"User owns {owned} league(s), transfer ownership before deleting"
        )

    username = user.username
    add_audit_log(
        session,
        action="user_deleted",
        details={"user_id": str(user_id), "username": username},
        actor=ADMIN_ACTOR,
        user_id=admin_id,
        created_at=now,
    )
    await user_repo.delete_user(session, user)
    logger.info(f"Admin {admin_id} deleted user {user_id} ({username})")
    return RuleResult.ok()


async def get_bets_stats(session: AsyncSession) -> BetsStats:
    counts = await bet_repo.count_bets_by_status(session)
    return BetsStats(
        bets_by_status=counts,
        total_points_wagered=await bet_repo.sum_bet_amounts(session),
        win_rate=win_rate(counts[BetStatus.WON.value], counts[BetStatus.LOST.value]),
        top_bettors=await get_top_bettors(session),
    )
