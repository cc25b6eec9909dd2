"""
Competition catalogue endpoints (read side of the fixtures sync)
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.db.session import get_db
from app.models.enums import MatchStatus
from app.models.match import Competition
from app.repos import match_repo

router = APIRouter()

# Competitions sync daily, fixtures every few hours
CATALOGUE_CACHE = "public, max-age=3600"
FIXTURES_CACHE = "public, max-age=300"


async def _require_competition(session: AsyncSession, competition_id: UUID) -> Competition:
    competition = await match_repo.get_competition_by_id(session, competition_id)
    if competition is None:
        raise NotFoundError("Competition", competition_id)
    return competition


def _summary(competition: Competition) -> dict:
    return {"id": str(competition.id), "name": competition.name, "sport": competition.sport}


async def _with_teams(session: AsyncSession, matches) -> list:
    teams = await match_repo.get_teams_by_ids(
        session, [m.home_team_id for m in matches] + [m.away_team_id for m in matches]
    )
    items = []
    for match in matches:
        item = match.to_dict()
        home, away = teams.get(match.home_team_id), teams.get(match.away_team_id)
        item["home_team"] = home.to_dict() if home else None
        item["away_team"] = away.to_dict() if away else None
        items.append(item)
    return items


@router.get("")
async def list_competitions(
    response: Response,
    sport: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_db)
):
    """
    List competitions by name, optionally filtered by sport, country or active flag.
    """
    competitions = await match_repo.get_competitions(session, sport=sport, country=country, is_active=is_active)
    response.headers["Cache-Control"] = CATALOGUE_CACHE
    return {"competitions": [c.to_dict() for c in competitions], "count": len(competitions)}


@router.get("/{competition_id}")
async def get_competition(
    competition_id: UUID,
    response: Response,
    session: AsyncSession = Depends(get_db)
):
    """
    Competition details with its ten most recent matches.
    """
    competition = await _require_competition(session, competition_id)
    recent = await match_repo.get_matches(session, competition_id=competition_id, limit=10, newest_first=True)

    result = competition.to_dict()
    result["matches"] = await _with_teams(session, recent)
    result["match_count"] = await match_repo.count_matches(session, competition_id)
    response.headers["Cache-Control"] = CATALOGUE_CACHE
    return result


@router.get("/{competition_id}/teams")
async def get_competition_teams(
    competition_id: UUID,
    response: Response,
    session: AsyncSession = Depends(get_db)
):
    competition = await _require_competition(session, competition_id)
    teams = await match_repo.get_competition_teams(session, competition_id)
    response.headers["Cache-Control"] = CATALOGUE_CACHE
    return {"competition": _summary(competition), "teams": [t.to_dict() for t in teams], "count": len(teams)}


@router.get("/{competition_id}/matches")
async def get_competition_matches(
    competition_id: UUID,
    response: Response,
    match_status: Optional[MatchStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db)
):
    """
    Matches of a competition. Upcoming fixtures come soonest first, others newest first.
    """
    competition = await _require_competition(session, competition_id)
    matches = await match_repo.get_matches(
        session,
        competition_id=competition_id,
        status=match_status.value if match_status else None,
        limit=limit,
        offset=offset,
        newest_first=match_status != MatchStatus.UPCOMING,
    )
    response.headers["Cache-Control"] = FIXTURES_CACHE
    return {"competition": _summary(competition), "matches": await _with_teams(session, matches), "count": len(matches)}
