"""
League API endpoints
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_member
from app.api.errors import raise_for_rule
from app.core.auth import get_current_user
from app.core.clock import Clock, get_clock
from app.db.session import get_db
from app.models.enums import RuleViolation
from app.models.user import User
from app.repos import league_repo, match_repo, wallet_repo
from app.services import competition_gate, leagues as league_service, plans as plan_service

router = APIRouter()


class LeagueCreate(BaseModel):
    """League creation request model"""
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_private: bool = True
    competition_id: Optional[UUID] = None


class JoinRequest(BaseModel):
    invite_code: str = Field(..., min_length=1, max_length=16)


class TransferRequest(BaseModel):
    new_owner_id: UUID


class CompetitionChangeRequest(BaseModel):
    competition_id: UUID


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_league(
    league_data: LeagueCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Create a league on the free plan.

    The caller becomes the owner and the league wallet starts empty.
    """
    if league_data.competition_id is not None:
        competition = await match_repo.get_competition_by_id(session, league_data.competition_id)
        if competition is None or not competition.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"reason": RuleViolation.COMPETITION_UNAVAILABLE.value, "message": "Competition is not available"}
            )

    league = await league_service.create_league(
        session,
        owner_id=current_user.id,
        name=league_data.name,
        now=clock.now(),
        description=league_data.description,
        is_private=league_data.is_private,
        competition_id=league_data.competition_id,
    )
    return league.to_dict()


@router.get("")
async def list_my_leagues(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    Leagues the current user belongs to, with their role and points.
    """
    rows = await league_repo.get_leagues_for_user(session, current_user.id)
    leagues = []
    for league, member in rows:
        item = league.to_dict()
        item["role"] = member.role
        item["points"] = member.points
        leagues.append(item)
    return {"leagues": leagues}


@router.post("/join")
async def join_league(
    join_data: JoinRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    result = await league_service.join_league(session, current_user.id, join_data.invite_code, clock.now())
    raise_for_rule(result)
    return {"success": True, "league_id": str(result.league_id)}


@router.get("/{league_id}")
async def get_league(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    League details for a member: plan, membership and member count.
    """
    league, member = await require_member(session, league_id, current_user.id)
    plan = await plan_service.get_plan(session, league.plan_id)

    detail = league.to_dict()
    detail["plan"] = plan.to_dict()
    detail["member_count"] = await league_repo.count_members(session, league_id)
    detail["my_role"] = member.role
    detail["my_points"] = member.points
    return detail


@router.post("/{league_id}/invite-code")
async def regenerate_invite_code(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    result = await league_service.regenerate_invite_code(session, league_id, current_user.id)
    raise_for_rule(result)
    return {"invite_code": result.invite_code}


@router.post("/{league_id}/transfer")
async def transfer_ownership(
    league_id: UUID,
    transfer_data: TransferRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    result = await league_service.transfer_ownership(
        session, league_id, current_user.id, transfer_data.new_owner_id, clock.now()
    )
    raise_for_rule(result)
    return {"success": True, "owner_id": str(transfer_data.new_owner_id)}


@router.delete("/{league_id}")
async def delete_league(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    result = await league_service.delete_league(session, league_id, current_user.id, clock.now())
    raise_for_rule(result)
    return {"success": True}


@router.get("/{league_id}/limits")
async def get_plan_limits(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Usage of the league against its plan limits.
    """
    await require_member(session, league_id, current_user.id)
    limits = await plan_service.check_plan_limits(session, league_id, clock.now())
    return limits.model_dump()


@router.get("/{league_id}/competition")
async def get_competition_status(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Current competition and whether it can be changed now.
    """
    league, _ = await require_member(session, league_id, current_user.id)
    now = clock.now()
    plan = plan_service.PlanSummary.from_plan(await plan_service.get_plan(session, league.plan_id))
    wallet = await wallet_repo.get_or_create_wallet(session, league_id)

    competition = None
    if league.current_competition_id:
        current = await match_repo.get_competition_by_id(session, league.current_competition_id)
        competition = current.to_dict() if current else None

    gate = competition_gate.can_change_competition(
        league.competition_changed_at, plan.max_changes_week, wallet.is_frozen, now
    )
    return {
        "competition": competition,
        "competition_changed_at": league.competition_changed_at.isoformat() if league.competition_changed_at else None,
        "can_change": gate.valid,
        "reason": gate.reason.value if gate.reason else None,
        "days_remaining": competition_gate.days_until_competition_change(
            league.competition_changed_at, plan.max_changes_week, now
        ),
    }


@router.put("/{league_id}/competition")
async def change_competition(
    league_id: UUID,
    change_data: CompetitionChangeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    result = await competition_gate.change_league_competition(
        session, league_id, change_data.competition_id, current_user.id, clock.now()
    )
    raise_for_rule(result)
    return {"success": True, "competition_id": str(change_data.competition_id)}
