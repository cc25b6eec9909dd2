"""
Audit log repository for ledger side effects, admin actions and job runs
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from app.models.audit_log import AuditLog, SYSTEM_ACTOR


def add_audit_log(
    session: AsyncSession,
    action: str,
    details: dict,
    actor: str = SYSTEM_ACTOR,
    user_id: Optional[UUID] = None,
    created_at: Optional[datetime] = None
) -> AuditLog:
    """Stage an audit entry in the caller's transaction (no commit)."""
    audit_log = AuditLog(
        user_id=user_id,
        actor=actor,
        action=action,
        details=details,
    )
    if created_at is not None:
        audit_log.created_at = created_at
    session.add(audit_log)
    return audit_log


async def create_audit_log(
    session: AsyncSession,
    action: str,
    details: dict,
    actor: str = SYSTEM_ACTOR,
    user_id: Optional[UUID] = None,
    created_at: Optional[datetime] = None
) -> AuditLog:
    """
    Create an audit log entry.

    Args:
        session: Database session
        action: Action performed
        details: Additional details as JSON
        actor: Who performed it (system, scheduler or admin)
        user_id: Acting user ID (optional)
        created_at: Explicit timestamp (optional)

    Returns:
        Created AuditLog instance
    """
    audit_log = add_audit_log(session, action, details, actor, user_id, created_at)
    await session.commit()
    await session.refresh(audit_log)
    return audit_log


async def get_audit_logs(
    session: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    action: Optional[str] = None
) -> List[AuditLog]:
    """
    Get audit logs.

    Args:
        session: Database session
        limit: Maximum number of logs to return
        offset: Number of logs to skip
        action: Filter by action type

    Returns:
        List of AuditLog instances
    """
    query = select(AuditLog).order_by(desc(AuditLog.created_at))

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit).offset(offset)

    result = await session.execute(query)
    return result.scalars().all()


async def get_last_audit_log(session: AsyncSession, action: str) -> Optional[AuditLog]:
    """Most recent entry for an action, or None."""
    logs = await get_audit_logs(session, limit=1, action=action)
    return logs[0] if logs else None
