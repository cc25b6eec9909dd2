#!/usr/bin/env python3
"""
Seed the subscription plans (free, champion, mvp).
Usage:
  python -m app.scripts.seed_plans
"""
import asyncio
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import session_scope
from app.models.plan import Plan, UNLIMITED
from app.repos.plan_repo import get_plan_by_id

logger = logging.getLogger(__name__)

DEFAULT_PLANS = [
    {
        "id": "free",
        "name": "Free",
        "max_members": 4,
        "max_competitions": 1,
        "max_changes_week": 1,
        "monthly_price": Decimal("0.00"),
        "features": {},
    },
    {
        "id": "champion",
        "name": "Champion",
        "max_members": 10,
        "max_competitions": UNLIMITED,
        "max_changes_week": UNLIMITED,
        "monthly_price": Decimal("5.99"),
        "features": {"unlimitedCompetitions": True, "unlimitedChanges": True},
    },
    {
        "id": "mvp",
        "name": "MVP",
        "max_members": 30,
        "max_competitions": UNLIMITED,
        "max_changes_week": UNLIMITED,
        "monthly_price": Decimal("11.99"),
        "features": {"unlimitedCompetitions": True, "unlimitedChanges": True, "prioritySupport": True},
    },
]


async def seed_plans(session: AsyncSession) -> int:
    """Insert missing plans; existing rows are left untouched. Returns the number created."""
    created = 0
    for data in DEFAULT_PLANS:
        if await get_plan_by_id(session, data["id"]) is not None:
            continue
        session.add(Plan(**data))
        created += 1
    await session.commit()
    return created


async def run():
    async with session_scope() as session:
        created = await seed_plans(session)
    logger.info(f"Seeded {created} plan(s)")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run())
