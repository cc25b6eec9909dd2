"""
Audit trail: ledger side effects, admin actions and job runs
"""

import uuid

from sqlalchemy import Column, String, DateTime, Index, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.db.base import Base

SYSTEM_ACTOR = "system"
SCHEDULER_ACTOR = "scheduler"
ADMIN_ACTOR = "admin"


class AuditLog(Base):
    """Audit log model - audit_logs table"""
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_logs_action_created", "action", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=True)  # acting user, when there is one
    actor = Column(String(128), nullable=True)
    action = Column(String(128), nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<AuditLog(action={self.action}, actor={self.actor}, at={self.created_at})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id) if self.user_id else None,
            "actor": self.actor,
            "action": self.action,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
