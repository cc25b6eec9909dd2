"""
League wallet and contribution ledger models
"""

from sqlalchemy import Column, String, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db.base import Base
import sqlalchemy as sa
import uuid


class LeagueWallet(Base):
    """League wallet model - league_wallets table (one per league)"""
    __tablename__ = "league_wallets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    league_id = Column(UUID(as_uuid=True), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, unique=True)
    balance = Column(Numeric(10, 2), nullable=False, default=0)
    # NULL while the league is on a free plan
    next_payment_date = Column(DateTime(timezone=True), nullable=True)
    is_frozen = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<LeagueWallet(id={self.id}, league_id={self.league_id}, balance={self.balance}, frozen={self.is_frozen})>"


class Contribution(Base):
    """Contribution model - contributions table (append-only)"""
    __tablename__ = "contributions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wallet_id = Column(UUID(as_uuid=True), ForeignKey("league_wallets.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(32), nullable=False, default='mock')
    payment_id = Column(String(128), nullable=False, unique=True)
    status = Column(
        sa.Enum('pending', 'completed', 'failed', name='contribution_status'),
        nullable=False,
        default='completed'
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint('amount > 0', name='chk_contribution_amount_positive'),
    )

    def __repr__(self):
        return f"<Contribution(id={self.id}, wallet_id={self.wallet_id}, amount={self.amount})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "wallet_id": str(self.wallet_id),
            "user_id": str(self.user_id),
            "amount": str(self.amount),
            "payment_method": self.payment_method,
            "payment_id": self.payment_id,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
