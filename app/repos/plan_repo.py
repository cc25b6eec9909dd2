"""
Plan repository (read-only lookups over seeded tiers)
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.plan import Plan


async def get_plan_by_id(session: AsyncSession, plan_id: str) -> Optional[Plan]:
    """
    Get plan by ID.

    Args:
        session: Database session
        plan_id: Plan key (free, champion, mvp)

    Returns:
        Plan instance or None if not found
    """
    result = await session.execute(
        select(Plan).where(Plan.id == plan_id)
    )
    return result.scalar_one_or_none()


async def list_plans(session: AsyncSession) -> List[Plan]:
    """
    Get all plans ordered by ascending monthly price.

    Args:
        session: Database session

    Returns:
        List of Plan instances
    """
    result = await session.execute(
        select(Plan).order_by(Plan.monthly_price.asc(), Plan.max_members.asc())
    )
    return result.scalars().all()
