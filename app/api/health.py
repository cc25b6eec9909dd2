"""
Liveness and readiness checks
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness: the process is up and serving requests."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(response: Response, session: AsyncSession = Depends(get_db)):
    """
    Readiness: the database answers a trivial query.

    Returns 503 while the database is unreachable.
    """
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error(f"Readiness check failed: {exc}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable", "database": "error"}
    return {"status": "ok", "database": "ok"}
