"""
Statistics API endpoints
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_member
from app.core.auth import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.services import stats as stats_service

router = APIRouter()


@router.get("/global")
async def global_stats(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    stats = await stats_service.get_global_stats(session)
    return stats.model_dump(mode="json")


@router.get("/user/{user_id}")
async def user_stats(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    stats = await stats_service.get_user_stats(session, user_id)
    return stats.model_dump(mode="json")


@router.get("/league/{league_id}")
async def league_stats(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    League standings; visible to members only.
    """
    await require_member(session, league_id, current_user.id)
    stats = await stats_service.get_league_stats(session, league_id)
    return stats.model_dump(mode="json")
