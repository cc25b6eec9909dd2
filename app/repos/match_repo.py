"""
Match and competition repository (read side of the fixtures sync)
"""

from typing import Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.models.match import Competition, Match, Team


async def get_match_by_id(session: AsyncSession, match_id: UUID) -> Optional[Match]:
    """
    Get match by ID.

    Args:
        session: Database session
        match_id: Match UUID

    Returns:
        Match instance or None if not found
    """
    result = await session.execute(
        select(Match).where(Match.id == match_id)
    )
    return result.scalar_one_or_none()


async def get_competition_by_id(session: AsyncSession, competition_id: UUID) -> Optional[Competition]:
    """
    Get competition by ID.

    Args:
        session: Database session
        competition_id: Competition UUID

    Returns:
        Competition instance or None if not found
    """
    result = await session.execute(
        select(Competition).where(Competition.id == competition_id)
    )
    return result.scalar_one_or_none()


async def get_matches(
    session: AsyncSession,
    competition_id: Optional[UUID] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    newest_first: bool = False
) -> List[Match]:
    """
    Get list of matches ordered by kickoff.

    Args:
        session: Database session
        competition_id: Filter by competition
        status: Filter by match status
        limit: Maximum number of matches to return
        offset: Number of matches to skip
        newest_first: Order by kickoff descending instead

    Returns:
        List of Match instances
    """
    order = Match.start_time.desc() if newest_first else Match.start_time.asc()
    query = select(Match).order_by(order)

    if competition_id:
        query = query.where(Match.competition_id == competition_id)
    if status:
        query = query.where(Match.status == status)

    query = query.limit(limit).offset(offset)

    result = await session.execute(query)
    return result.scalars().all()


async def get_competitions(
    session: AsyncSession,
    sport: Optional[str] = None,
    country: Optional[str] = None,
    is_active: Optional[bool] = None
) -> List[Competition]:
    """
    Get competitions ordered by name.

    Args:
        session: Database session
        sport: Filter by sport (case-insensitive)
        country: Filter by country
        is_active: Filter by active flag

    Returns:
        List of Competition instances
    """
    query = select(Competition).order_by(Competition.name.asc())

    if sport:
        query = query.where(Competition.sport == sport.lower())
    if country:
        query = query.where(Competition.country == country)
    if is_active is not None:
        query = query.where(Competition.is_active == is_active)

    result = await session.execute(query)
    return result.scalars().all()


async def count_matches(session: AsyncSession, competition_id: UUID) -> int:
    total = await session.scalar(
        select(func.count(Match.id)).where(Match.competition_id == competition_id)
    )
    return total or 0


async def get_competition_teams(session: AsyncSession, competition_id: UUID) -> List[Team]:
    """Teams playing at least one match of the competition, ordered by name."""
    playing = select(Match.id).where(
        Match.competition_id == competition_id,
        or_(Match.home_team_id == Team.id, Match.away_team_id == Team.id),
    ).exists()

    result = await session.execute(
        select(Team).where(playing).order_by(Team.name.asc())
    )
    return result.scalars().all()


async def get_teams_by_ids(session: AsyncSession, team_ids) -> Dict[UUID, Team]:
    if not team_ids:
        return {}
    result = await session.execute(select(Team).where(Team.id.in_(set(team_ids))))
    return {team.id: team for team in result.scalars().all()}
