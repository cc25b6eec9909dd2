"""
League and membership repository
"""

from typing import List, Optional, Tuple
from uuid import UUID
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, or_

from app.models.league import League, LeagueMember

logger = logging.getLogger(__name__)


async def get_league_by_id(
    session: AsyncSession,
    league_id: UUID,
    include_inactive: bool = False
) -> Optional[League]:
    """
    Get league by ID.

    Args:
        session: Database session
        league_id: League UUID
        include_inactive: Also return soft-deleted leagues

    Returns:
        League instance or None if not found
    """
    query = select(League).where(League.id == league_id)
    if not include_inactive:
        query = query.where(League.is_active.is_(True))
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_league_for_update(session: AsyncSession, league_id: UUID) -> Optional[League]:
    """Get an active league with a row lock held until the transaction ends."""
    result = await session.execute(
        select(League)
        .where(League.id == league_id, League.is_active.is_(True))
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def get_league_by_invite_code(session: AsyncSession, invite_code: str) -> Optional[League]:
    result = await session.execute(
        select(League).where(
            League.invite_code == invite_code.upper(),
            League.is_active.is_(True)
        )
    )
    return result.scalar_one_or_none()


async def invite_code_exists(session: AsyncSession, invite_code: str) -> bool:
    count = await session.scalar(
        select(func.count(League.id)).where(League.invite_code == invite_code)
    )
    return bool(count)


async def get_leagues_for_user(session: AsyncSession, user_id: UUID) -> List[Tuple[League, LeagueMember]]:
    """
    Get the active leagues a user belongs to with their membership row.

    Args:
        session: Database session
        user_id: User UUID

    Returns:
        List of (League, LeagueMember) tuples, newest league first
    """
    result = await session.execute(
        select(League, LeagueMember)
        .join(LeagueMember, LeagueMember.league_id == League.id)
        .where(LeagueMember.user_id == user_id, League.is_active.is_(True))
        .order_by(desc(League.created_at))
    )
    return result.all()


async def count_leagues_owned_by(session: AsyncSession, user_id: UUID) -> int:
    count = await session.scalar(
        select(func.count(League.id)).where(League.owner_id == user_id)
    )
    return count or 0


async def get_leagues(
    session: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    search: Optional[str] = None,
    is_active: Optional[bool] = None
) -> Tuple[List[League], int]:
    """
    Get a page of leagues (admin listing) with the total count.

    Args:
        session: Database session
        limit: Maximum number of leagues to return
        offset: Number of leagues to skip
        search: Case-insensitive match on name or invite code
        is_active: Filter by active flag

    Returns:
        Tuple of (leagues, total)
    """
    filters = []
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(or_(
            func.lower(League.name).like(pattern),
            func.lower(League.invite_code).like(pattern),
        ))
    if is_active is not None:
        filters.append(League.is_active.is_(is_active))

    result = await session.execute(
        select(League).where(*filters).order_by(desc(League.created_at)).limit(limit).offset(offset)
    )
    total = await session.scalar(select(func.count(League.id)).where(*filters))
    return result.scalars().all(), total or 0


async def get_member(session: AsyncSession, league_id: UUID, user_id: UUID) -> Optional[LeagueMember]:
    """
    Get a user's membership row in a league.

    Args:
        session: Database session
        league_id: League UUID
        user_id: User UUID

    Returns:
        LeagueMember instance or None if the user is not a member
    """
    result = await session.execute(
        select(LeagueMember).where(
            LeagueMember.league_id == league_id,
            LeagueMember.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def get_member_for_update(session: AsyncSession, league_id: UUID, user_id: UUID) -> Optional[LeagueMember]:
    """Get a membership row locked for a points update."""
    result = await session.execute(
        select(LeagueMember)
        .where(
            LeagueMember.league_id == league_id,
            LeagueMember.user_id == user_id
        )
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def get_members(session: AsyncSession, league_id: UUID) -> List[LeagueMember]:
    """Members of a league ordered by points (standings order)."""
    result = await session.execute(
        select(LeagueMember)
        .where(LeagueMember.league_id == league_id)
        .order_by(desc(LeagueMember.points), LeagueMember.joined_at)
    )
    return result.scalars().all()


async def count_members(session: AsyncSession, league_id: UUID) -> int:
    """
    Count members of a league.

    Args:
        session: Database session
        league_id: League UUID

    Returns:
        Number of LeagueMember rows for the league
    """
    count = await session.scalar(
        select(func.count(LeagueMember.id)).where(LeagueMember.league_id == league_id)
    )
    return count or 0
