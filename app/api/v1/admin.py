"""
Admin API endpoints
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import raise_for_rule
from app.core.auth import get_current_admin
from app.core.clock import Clock, get_clock
from app.db.session import get_db
from app.models.audit_log import ADMIN_ACTOR
from app.models.enums import UserRole
from app.models.user import User
from app.repos.audit_log_repo import get_audit_logs
from app.services import admin as admin_service
from app.services import betting
from app.services import wallet as wallet_service

router = APIRouter()


class UserListResponse(BaseModel):
    """User list response model"""
    users: List[dict]
    total: int
    page: int
    limit: int


class LeagueListResponse(BaseModel):
    """League list response model"""
    leagues: List[dict]
    total: int
    page: int
    limit: int


class AuditLogResponse(BaseModel):
    """Audit log response model"""
    logs: List[dict]
    limit: int
    offset: int


class UserUpdateRequest(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


@router.get("/dashboard")
async def get_dashboard(
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Platform counters and the last scheduled job runs.
    """
    stats = await admin_service.get_dashboard_stats(session, clock.now())
    return stats.model_dump(mode="json")


@router.get("/users", response_model=UserListResponse)
async def get_users_list(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match on email or username"),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db)
):
    """
    Get list of users (admin only).
    """
    users, total = await admin_service.list_users(
        session, page=page, limit=limit, search=search,
        role=role.value if role else None, is_active=is_active
    )
    return UserListResponse(users=[user.to_dict() for user in users], total=total, page=page, limit=limit)


@router.patch("/users/{user_id}")
async def update_user(
    user_id: UUID,
    update_data: UserUpdateRequest,
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Change a user's role or active flag.
    """
    if user_id == current_admin.id and (
        update_data.is_active is False or update_data.role == UserRole.USER
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot demote or deactivate themselves"
        )

    user = await admin_service.update_user(
        session,
        admin_id=current_admin.id,
        user_id=user_id,
        role=update_data.role.value if update_data.role else None,
        is_active=update_data.is_active,
        now=clock.now(),
    )
    return user.to_dict()


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: UUID,
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    if user_id == current_admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot delete themselves"
        )
    result = await admin_service.delete_user(session, current_admin.id, user_id, clock.now())
    raise_for_rule(result)
    return {"success": True}


@router.get("/leagues", response_model=LeagueListResponse)
async def get_leagues_list(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match on name or invite code"),
    is_active: Optional[bool] = Query(None),
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db)
):
    leagues, total = await admin_service.list_leagues(
        session, page=page, limit=limit, search=search, is_active=is_active
    )
    return LeagueListResponse(leagues=[league.to_dict() for league in leagues], total=total, page=page, limit=limit)


@router.get("/bets/stats")
async def get_bets_stats(
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db)
):
    stats = await admin_service.get_bets_stats(session)
    return stats.model_dump(mode="json")


@router.post("/leagues/{league_id}/freeze")
async def freeze_league(
    league_id: UUID,
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    wallet = await wallet_service.freeze_league(session, league_id, actor=ADMIN_ACTOR, now=clock.now())
    return {"league_id": str(league_id), "is_frozen": wallet.is_frozen}


@router.post("/leagues/{league_id}/unfreeze")
async def unfreeze_league(
    league_id: UUID,
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    wallet = await wallet_service.unfreeze_league(session, league_id, actor=ADMIN_ACTOR, now=clock.now())
    return {"league_id": str(league_id), "is_frozen": wallet.is_frozen}


@router.post("/payments/process")
async def process_due_payments(
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Run the monthly charge now for every league with a payment due.
    """
    summary = await wallet_service.process_all_due_payments(session, clock.now())
    return summary.model_dump()


@router.post("/challenges/{challenge_id}/settle")
async def settle_challenge(
    challenge_id: UUID,
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Settle a challenge from its match result.
    """
    summary, rejection = await betting.settle_challenge(session, challenge_id, clock.now())
    if rejection is not None:
        raise_for_rule(rejection)
    return summary.model_dump(mode="json")


@router.get("/audit-logs", response_model=AuditLogResponse)
async def get_audit_logs_list(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    action: Optional[str] = Query(None, description="Filter by action"),
    current_admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_db)
):
    """
    Get audit logs (admin only).
    """
    logs = await get_audit_logs(session, limit=limit, offset=offset, action=action)
    return AuditLogResponse(logs=[log.to_dict() for log in logs], limit=limit, offset=offset)
