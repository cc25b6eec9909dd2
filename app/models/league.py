"""
League and league membership models
"""

from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db.base import Base
import sqlalchemy as sa
import uuid


class League(Base):
    """League model - leagues table"""
    __tablename__ = "leagues"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    plan_id = Column(String(32), ForeignKey("plans.id"), nullable=False, default='free')
    invite_code = Column(String(16), nullable=False, unique=True)
    is_private = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    current_competition_id = Column(UUID(as_uuid=True), ForeignKey("competitions.id"), nullable=True)
    # NULL means the competition was never changed, so a change is always allowed
    competition_changed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<League(id={self.id}, name={self.name}, plan={self.plan_id})>"

    def to_dict(self):
        """Convert league to dictionary for API responses"""
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "owner_id": str(self.owner_id),
            "plan_id": self.plan_id,
            "invite_code": self.invite_code,
            "is_private": self.is_private,
            "is_active": self.is_active,
            "current_competition_id": str(self.current_competition_id) if self.current_competition_id else None,
            "competition_changed_at": self.competition_changed_at.isoformat() if self.competition_changed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class LeagueMember(Base):
    """League member model - league_members table"""
    __tablename__ = "league_members"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    league_id = Column(UUID(as_uuid=True), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(sa.Enum('owner', 'admin', 'member', name='member_role'), nullable=False, default='member')
    points = Column(Integer, nullable=False, default=1000)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('league_id', 'user_id', name='uq_league_member'),
    )

    def __repr__(self):
        return f"<LeagueMember(league_id={self.league_id}, user_id={self.user_id}, role={self.role}, points={self.points})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "league_id": str(self.league_id),
            "user_id": str(self.user_id),
            "role": self.role,
            "points": self.points,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
