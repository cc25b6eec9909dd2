"""
Challenge and bet API endpoints
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_member
from app.api.errors import raise_for_rule
from app.core.auth import get_current_user
from app.core.clock import Clock, get_clock
from app.db.session import get_db
from app.models.enums import GroupBetStatus
from app.models.user import User
from app.repos import bet_repo
from app.services import betting
from app.services.weekly_limit import get_weekly_bet_status

router = APIRouter()


class ChallengeCreate(BaseModel):
    match_id: UUID


class BetCreate(BaseModel):
    """Bet placement request model; prediction_value is a JSON object or its text"""
    prediction_type: str
    prediction_value: Any
    amount: int = Field(..., description="Points wagered")


class DirectBetCreate(BetCreate):
    match_id: UUID


@router.post("/{league_id}/challenges", status_code=status.HTTP_201_CREATED)
async def create_challenge(
    league_id: UUID,
    challenge_data: ChallengeCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Open a challenge on a match; it closes 10 minutes before kickoff.
    """
    result = await betting.create_challenge(
        session, league_id, challenge_data.match_id, current_user.id, clock.now()
    )
    raise_for_rule(result)
    return {
        "challenge_id": str(result.challenge_id),
        "closes_at": result.closes_at.isoformat(),
    }


@router.get("/{league_id}/challenges")
async def list_challenges(
    league_id: UUID,
    status_filter: Optional[GroupBetStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    await require_member(session, league_id, current_user.id)
    challenges = await betting.list_challenges(
        session, league_id, status=status_filter.value if status_filter else None, page=page, limit=limit
    )
    return {
        "challenges": [challenge.to_dict() for challenge in challenges],
        "page": page,
        "limit": limit,
    }


@router.get("/{league_id}/challenges/active")
async def list_active_challenges(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Open challenges that can still take bets.
    """
    await require_member(session, league_id, current_user.id)
    challenges = await betting.list_active_challenges(session, league_id, clock.now())
    return {"challenges": [challenge.to_dict() for challenge in challenges]}


@router.get("/{league_id}/challenges/{challenge_id}")
async def get_challenge(
    league_id: UUID,
    challenge_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    await require_member(session, league_id, current_user.id)
    detail = await betting.get_challenge_detail(session, league_id, challenge_id)
    my_bet = await bet_repo.get_user_bet_on_challenge(session, challenge_id, current_user.id)
    detail["my_bet"] = my_bet.to_dict() if my_bet else None
    return detail


@router.post("/{league_id}/challenges/{challenge_id}/bets", status_code=status.HTTP_201_CREATED)
async def place_challenge_bet(
    league_id: UUID,
    challenge_id: UUID,
    bet_data: BetCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Bet on a challenge. One bet per member per challenge.
    """
    result = await betting.place_challenge_bet(
        session,
        user_id=current_user.id,
        league_id=league_id,
        group_bet_id=challenge_id,
        prediction_type=bet_data.prediction_type,
        prediction_value=bet_data.prediction_value,
        amount=bet_data.amount,
        now=clock.now(),
    )
    raise_for_rule(result)
    return result.model_dump(mode="json", exclude={"valid", "reason", "message"})


@router.get("/{league_id}/challenges/{challenge_id}/bets")
async def list_challenge_bets(
    league_id: UUID,
    challenge_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    await require_member(session, league_id, current_user.id)
    challenge = await bet_repo.get_challenge_by_id(session, challenge_id)
    if challenge is None or challenge.league_id != league_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Challenge {challenge_id} not found")
    bets = await bet_repo.get_challenge_bets(session, challenge_id)
    return {"bets": [bet.to_dict() for bet in bets]}


@router.post("/{league_id}/bets", status_code=status.HTTP_201_CREATED)
async def place_bet(
    league_id: UUID,
    bet_data: DirectBetCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Bet directly on a match, outside any challenge.
    """
    result = await betting.place_bet(
        session,
        user_id=current_user.id,
        league_id=league_id,
        match_id=bet_data.match_id,
        prediction_type=bet_data.prediction_type,
        prediction_value=bet_data.prediction_value,
        amount=bet_data.amount,
        now=clock.now(),
    )
    raise_for_rule(result)
    return result.model_dump(mode="json", exclude={"valid", "reason", "message"})


@router.get("/{league_id}/bets/weekly-status")
async def weekly_status(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    The caller's bet usage for the current Monday-Sunday week.
    """
    await require_member(session, league_id, current_user.id)
    weekly = await get_weekly_bet_status(session, current_user.id, league_id, clock.now())
    return weekly.model_dump(mode="json")
