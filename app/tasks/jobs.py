"""
Scheduled jobs: monthly plan charges and challenge closing
"""

import asyncio
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.celery_app import celery
from app.core.clock import get_clock
from app.db.session import session_scope
from app.repos.audit_log_repo import create_audit_log
from app.services.admin import PAYMENTS_JOB, CHALLENGES_JOB
from app.services.betting import close_expired_challenges
from app.services.wallet import process_all_due_payments

logger = logging.getLogger(__name__)


async def run_due_payments(session: AsyncSession, now: datetime) -> dict:
    """
    Charge every league whose payment is due and record the run.

    Args:
        session: Database session
        now: Current time

    Returns:
        Dict with processed / failed counts
    """
    summary = await process_all_due_payments(session, now)
    result = summary.model_dump()
    await create_audit_log(session, action=PAYMENTS_JOB, details=result, created_at=now)
    logger.info(f"Due payments run: {summary.processed} processed, {summary.failed} failed")
    return result


async def run_close_expired_challenges(session: AsyncSession, now: datetime) -> dict:
    """Close challenges past their closing time and record the run."""
    closed = await close_expired_challenges(session, now)
    result = {"closed": closed}
    await create_audit_log(session, action=CHALLENGES_JOB, details=result, created_at=now)
    return result


def _run(job, *args):
    async def _process():
        async with session_scope() as session:
            return await job(session, *args)

    return asyncio.run(_process())


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def process_due_payments_task(self):
    """
    Daily monthly-charge run.
    """
    try:
        logger.info("Starting due payments task")
        return _run(run_due_payments, get_clock().now())
    except Exception as exc:
        logger.error(f"Error processing due payments: {exc}")
        if self.request.retries < self.max_retries:
            logger.info(f"Retrying due payments (attempt {self.request.retries + 1})")
            raise self.retry(countdown=60 * (2 ** self.request.retries))  # Exponential backoff
        logger.error("Max retries exceeded for due payments")
        raise


@celery.task(bind=True, max_retries=3, default_retry_delay=10)
def close_expired_challenges_task(self):
    try:
        return _run(run_close_expired_challenges, get_clock().now())
    except Exception as exc:
        logger.error(f"Error closing expired challenges: {exc}")
        if self.request.retries < self.max_retries:
            raise self.retry(countdown=10 * (2 ** self.request.retries))
        raise
