#!/usr/bin/env python3
"""
Seed an admin user for local setups.
Usage:
  ADMIN_EMAIL=admin@betteam.local ADMIN_PASSWORD=ChangeMeNow! python -m app.scripts.seed_admin
"""
import os
import asyncio
import logging

from app.core.auth import get_password_hash
from app.db.session import session_scope
from app.models.enums import UserRole
from app.repos.user_repo import create_user, get_user_by_email, update_user

logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@betteam.local")
ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "ChangeMeNow!")


async def run():
    async with session_scope() as session:
        user = await get_user_by_email(session, ADMIN_EMAIL)
        if user:
            if user.role != UserRole.ADMIN.value:
                await update_user(session, user.id, role=UserRole.ADMIN.value)
                logger.info(f"Promoted existing user to admin: {ADMIN_EMAIL}")
            else:
                logger.info(f"Admin exists: {ADMIN_EMAIL}")
            return

        await create_user(
            session,
            email=ADMIN_EMAIL,
            username=ADMIN_USERNAME,
            password_hash=get_password_hash(ADMIN_PASSWORD),
            role=UserRole.ADMIN.value,
        )
        logger.info(f"Created admin: {ADMIN_EMAIL}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run())
