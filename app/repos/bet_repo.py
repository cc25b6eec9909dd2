"""
Bet and challenge (group bet) repository
"""

from datetime import datetime
from typing import List, Optional, Dict
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, update

from app.models.bet import Bet, GroupBet
from app.models.enums import BetStatus, GroupBetStatus


async def count_bets_in_range(
    session: AsyncSession,
    user_id: UUID,
    league_id: UUID,
    start: datetime,
    end: datetime
) -> int:
    """
    Count a user's bets in a league created inside ``[start, end]``.

    Args:
        session: Database session
        user_id: User UUID
        league_id: League UUID
        start: Inclusive lower bound on created_at
        end: Inclusive upper bound on created_at

    Returns:
        Number of matching Bet rows
    """
    count = await session.scalar(
        select(func.count(Bet.id)).where(
            Bet.user_id == user_id,
            Bet.league_id == league_id,
            Bet.created_at >= start,
            Bet.created_at <= end
        )
    )
    return count or 0


async def get_bet_for_update(session: AsyncSession, bet_id: UUID) -> Optional[Bet]:
    result = await session.execute(
        select(Bet).where(Bet.id == bet_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def get_user_bet_on_challenge(session: AsyncSession, group_bet_id: UUID, user_id: UUID) -> Optional[Bet]:
    result = await session.execute(
        select(Bet).where(Bet.group_bet_id == group_bet_id, Bet.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_challenge_bets(session: AsyncSession, group_bet_id: UUID) -> List[Bet]:
    result = await session.execute(
        select(Bet).where(Bet.group_bet_id == group_bet_id).order_by(Bet.created_at)
    )
    return result.scalars().all()


async def get_pending_challenge_bets_for_update(session: AsyncSession, group_bet_id: UUID) -> List[Bet]:
    result = await session.execute(
        select(Bet)
        .where(Bet.group_bet_id == group_bet_id, Bet.status == BetStatus.PENDING.value)
        .with_for_update()
    )
    return result.scalars().all()


async def get_settled_statuses(
    session: AsyncSession,
    user_id: UUID,
    league_id: Optional[UUID] = None
) -> List[str]:
    """
    Get a user's won/lost outcomes, most recent first.

    Args:
        session: Database session
        user_id: User UUID
        league_id: Restrict to one league (optional)

    Returns:
        List of status strings ("won" / "lost")
    """
    query = select(Bet.status).where(
        Bet.user_id == user_id,
        Bet.status.in_([BetStatus.WON.value, BetStatus.LOST.value])
    )
    if league_id:
        query = query.where(Bet.league_id == league_id)
    query = query.order_by(desc(Bet.created_at))

    result = await session.execute(query)
    return [row[0] for row in result.all()]


async def count_bets_by_status(
    session: AsyncSession,
    user_id: Optional[UUID] = None,
    league_id: Optional[UUID] = None
) -> Dict[str, int]:
    """
    Count bets grouped by status.

    Every status is present in the result, defaulting to 0.

    Args:
        session: Database session
        user_id: Filter by user (optional)
        league_id: Filter by league (optional)

    Returns:
        Mapping of status to count
    """
    query = select(Bet.status, func.count(Bet.id)).group_by(Bet.status)
    if user_id:
        query = query.where(Bet.user_id == user_id)
    if league_id:
        query = query.where(Bet.league_id == league_id)

    counts = {status.value: 0 for status in BetStatus}
    result = await session.execute(query)
    for status, count in result.all():
        counts[status] = count
    return counts


async def sum_bet_amounts(
    session: AsyncSession,
    user_id: Optional[UUID] = None,
    league_id: Optional[UUID] = None
) -> int:
    query = select(func.coalesce(func.sum(Bet.amount), 0))
    if user_id:
        query = query.where(Bet.user_id == user_id)
    if league_id:
        query = query.where(Bet.league_id == league_id)
    return int(await session.scalar(query) or 0)


async def sum_actual_wins(session: AsyncSession, user_id: UUID) -> int:
    total = await session.scalar(
        select(func.coalesce(func.sum(Bet.actual_win), 0)).where(
            Bet.user_id == user_id,
            Bet.status == BetStatus.WON.value
        )
    )
    return int(total or 0)


async def get_recent_bets(
    session: AsyncSession,
    league_id: Optional[UUID] = None,
    user_id: Optional[UUID] = None,
    limit: int = 10
) -> List[Bet]:
    query = select(Bet).order_by(desc(Bet.created_at)).limit(limit)
    if league_id:
        query = query.where(Bet.league_id == league_id)
    if user_id:
        query = query.where(Bet.user_id == user_id)
    result = await session.execute(query)
    return result.scalars().all()


async def get_top_bettors(session: AsyncSession, limit: int = 10):
    """
    Get users with the most bets.

    Returns:
        List of (user_id, bet_count, total_amount) rows
    """
    result = await session.execute(
        select(Bet.user_id, func.count(Bet.id).label("bet_count"), func.sum(Bet.amount).label("total_amount"))
        .group_by(Bet.user_id)
        .order_by(desc("bet_count"))
        .limit(limit)
    )
    return result.all()


async def get_challenge_by_id(session: AsyncSession, group_bet_id: UUID) -> Optional[GroupBet]:
    """
    Get challenge by ID.

    Args:
        session: Database session
        group_bet_id: GroupBet UUID

    Returns:
        GroupBet instance or None if not found
    """
    result = await session.execute(
        select(GroupBet).where(GroupBet.id == group_bet_id)
    )
    return result.scalar_one_or_none()


async def get_challenge_for_update(session: AsyncSession, group_bet_id: UUID) -> Optional[GroupBet]:
    result = await session.execute(
        select(GroupBet).where(GroupBet.id == group_bet_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def get_challenge_for_match(session: AsyncSession, league_id: UUID, match_id: UUID) -> Optional[GroupBet]:
    result = await session.execute(
        select(GroupBet).where(GroupBet.league_id == league_id, GroupBet.match_id == match_id)
    )
    return result.scalar_one_or_none()


async def get_league_challenges(
    session: AsyncSession,
    league_id: UUID,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> List[GroupBet]:
    """
    Get challenges of a league, newest first.

    Args:
        session: Database session
        league_id: League UUID
        status: Filter by challenge status
        limit: Maximum number of challenges to return
        offset: Number of challenges to skip

    Returns:
        List of GroupBet instances
    """
    query = select(GroupBet).where(GroupBet.league_id == league_id)
    if status:
        query = query.where(GroupBet.status == status)
    query = query.order_by(desc(GroupBet.created_at)).limit(limit).offset(offset)
    result = await session.execute(query)
    return result.scalars().all()


async def get_active_challenges(session: AsyncSession, league_id: UUID, now: datetime) -> List[GroupBet]:
    """Open challenges of a league whose closing time is still ahead, soonest first."""
    result = await session.execute(
        select(GroupBet)
        .where(
            GroupBet.league_id == league_id,
            GroupBet.status == GroupBetStatus.OPEN.value,
            GroupBet.closes_at > now
        )
        .order_by(GroupBet.closes_at.asc())
    )
    return result.scalars().all()


async def count_challenge_bets(session: AsyncSession, group_bet_id: UUID) -> int:
    count = await session.scalar(
        select(func.count(Bet.id)).where(Bet.group_bet_id == group_bet_id)
    )
    return count or 0


async def close_expired_challenges(session: AsyncSession, now: datetime) -> int:
    """
    Move every open challenge whose closing time has passed to closed.

    Args:
        session: Database session
        now: Current time

    Returns:
        Number of challenges closed
    """
    try:
        result = await session.execute(
            update(GroupBet)
            .where(
                GroupBet.status == GroupBetStatus.OPEN.value,
                GroupBet.closes_at <= now
            )
            .values(status=GroupBetStatus.CLOSED.value)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        return result.rowcount or 0
    except Exception:
        await session.rollback()
        raise
