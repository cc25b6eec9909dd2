"""
Bet and challenge (group bet) models
"""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db.base import Base
import sqlalchemy as sa
import uuid


class GroupBet(Base):
    """Challenge model - group_bets table"""
    __tablename__ = "group_bets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    league_id = Column(UUID(as_uuid=True), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    match_id = Column(UUID(as_uuid=True), ForeignKey("matches.id"), nullable=False)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(sa.Enum('open', 'closed', 'settled', name='group_bet_status'), nullable=False, default='open')
    closes_at = Column(DateTime(timezone=True), nullable=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('league_id', 'match_id', name='uq_group_bet_league_match'),
    )

    def __repr__(self):
        return f"<GroupBet(id={self.id}, league_id={self.league_id}, match_id={self.match_id}, status={self.status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "league_id": str(self.league_id),
            "match_id": str(self.match_id),
            "created_by_id": str(self.created_by_id),
            "status": self.status,
            "closes_at": self.closes_at.isoformat() if self.closes_at else None,
            "settled_at": self.settled_at.isoformat() if self.settled_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Bet(Base):
    """Bet model - bets table"""
    __tablename__ = "bets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    match_id = Column(UUID(as_uuid=True), ForeignKey("matches.id"), nullable=False)
    league_id = Column(UUID(as_uuid=True), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    group_bet_id = Column(UUID(as_uuid=True), ForeignKey("group_bets.id", ondelete="SET NULL"), nullable=True)
    prediction_type = Column(String(32), nullable=False)
    prediction_value = Column(Text, nullable=False)
    amount = Column(Integer, nullable=False)
    status = Column(sa.Enum('pending', 'won', 'lost', 'void', name='bet_status'), nullable=False, default='pending')
    potential_win = Column(Integer, nullable=True)
    actual_win = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    settled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint('amount > 0', name='chk_bet_amount_positive'),
        UniqueConstraint('group_bet_id', 'user_id', name='uq_bet_group_bet_user'),
    )

    def __repr__(self):
        return f"<Bet(id={self.id}, user_id={self.user_id}, amount={self.amount}, status={self.status})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "match_id": str(self.match_id),
            "league_id": str(self.league_id),
            "group_bet_id": str(self.group_bet_id) if self.group_bet_id else None,
            "prediction_type": self.prediction_type,
            "prediction_value": self.prediction_value,
            "amount": self.amount,
            "status": self.status,
            "potential_win": self.potential_win,
            "actual_win": self.actual_win,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "settled_at": self.settled_at.isoformat() if self.settled_at else None,
        }
