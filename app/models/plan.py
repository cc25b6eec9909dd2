"""
Subscription plan model
"""

from sqlalchemy import Column, String, Integer, Numeric, JSON, CheckConstraint
from app.db.base import Base

# Stored sentinel meaning "no limit" for max_competitions / max_changes_week
UNLIMITED = -1


class Plan(Base):
    """Plan model - plans table (seeded, read-only at runtime)"""
    __tablename__ = "plans"

    id = Column(String(32), primary_key=True)
    name = Column(String(64), nullable=False)
    max_members = Column(Integer, nullable=False)
    max_competitions = Column(Integer, nullable=False, default=1)
    max_changes_week = Column(Integer, nullable=False, default=1)
    monthly_price = Column(Numeric(10, 2), nullable=False, default=0)
    features = Column(JSON, nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint('max_members >= 1', name='chk_plan_max_members'),
        CheckConstraint('monthly_price >= 0', name='chk_plan_price_nonneg'),
    )

    def __repr__(self):
        return f"<Plan(id={self.id}, price={self.monthly_price}, max_members={self.max_members})>"

    def to_dict(self):
        """Convert plan to dictionary; raw -1 limits are kept as-is"""
        return {
            "id": self.id,
            "name": self.name,
            "max_members": self.max_members,
            "max_competitions": self.max_competitions,
            "max_changes_week": self.max_changes_week,
            "monthly_price": str(self.monthly_price),
            "features": self.features or {},
        }
