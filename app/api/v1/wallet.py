"""
League wallet and plan change API endpoints
"""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Query, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_member
from app.api.errors import raise_for_ledger
from app.core.auth import get_current_user
from app.core.clock import Clock, get_clock
from app.db.session import get_db
from app.models.user import User
from app.services import wallet as wallet_service

router = APIRouter()


class ContributionRequest(BaseModel):
    """Contribution request model"""
    amount: Decimal = Field(..., description="Amount to contribute (EUR)")


class PlanChangeRequest(BaseModel):
    plan_id: str


@router.get("/{league_id}/wallet")
async def get_wallet(
    league_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    League wallet balance, plan and latest contributions.
    """
    await require_member(session, league_id, current_user.id)
    details = await wallet_service.get_wallet_details(session, league_id)
    return details.model_dump(mode="json")


@router.post("/{league_id}/wallet/contribute")
async def contribute(
    league_id: UUID,
    contribution_data: ContributionRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Add money to the league wallet.

    Any contribution unfreezes a frozen wallet.
    """
    await require_member(session, league_id, current_user.id)
    result = await wallet_service.contribute(
        session, league_id, current_user.id, contribution_data.amount, clock.now()
    )
    raise_for_ledger(result)
    return result.model_dump(mode="json")


@router.get("/{league_id}/wallet/contributions")
async def get_contributions(
    league_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    await require_member(session, league_id, current_user.id)
    history = await wallet_service.get_contribution_history(session, league_id, page=page, limit=limit)
    return history.model_dump(mode="json")


@router.post("/{league_id}/plan/upgrade")
async def upgrade_plan(
    league_id: UUID,
    plan_data: PlanChangeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    await require_member(session, league_id, current_user.id, manager=True)
    result = await wallet_service.upgrade_plan(session, league_id, plan_data.plan_id, clock.now())
    raise_for_ledger(result)
    return result.model_dump(mode="json")


@router.post("/{league_id}/plan/downgrade")
async def downgrade_plan(
    league_id: UUID,
    plan_data: PlanChangeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    await require_member(session, league_id, current_user.id, manager=True)
    result = await wallet_service.downgrade_plan(session, league_id, plan_data.plan_id, clock.now())
    raise_for_ledger(result)
    return result.model_dump(mode="json")
