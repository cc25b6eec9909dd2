"""
Subscription plan endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.services import plans as plan_service

router = APIRouter()


@router.get("")
async def list_plans(session: AsyncSession = Depends(get_db)):
    """
    List subscription plans, cheapest first.

    Unlimited limits are reported as -1.
    """
    plans = await plan_service.list_plans(session)
    return {"plans": [plan.to_dict() for plan in plans]}


@router.get("/{plan_id}")
async def get_plan(plan_id: str, session: AsyncSession = Depends(get_db)):
    plan = await plan_service.get_plan(session, plan_id)
    return plan.to_dict()
