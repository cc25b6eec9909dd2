"""
Sports reference data: competitions, teams and matches.

Rows are upserted by the external fixtures sync; the betting core only reads
them.
"""

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db.base import Base
import sqlalchemy as sa
import uuid


class Competition(Base):
    """Competition model - competitions table"""
    __tablename__ = "competitions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(64), nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    sport = Column(String(64), nullable=False, default='football')
    country = Column(String(64), nullable=True)
    logo_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Competition(id={self.id}, name={self.name})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "sport": self.sport,
            "country": self.country,
            "logo_url": self.logo_url,
            "is_active": self.is_active,
        }


class Team(Base):
    """Team model - teams table"""
    __tablename__ = "teams"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(64), nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(512), nullable=True)

    def __repr__(self):
        return f"<Team(id={self.id}, name={self.name})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "logo_url": self.logo_url,
        }


class Match(Base):
    """Match model - matches table"""
    __tablename__ = "matches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(128), nullable=True)
    competition_id = Column(UUID(as_uuid=True), ForeignKey("competitions.id"), nullable=False)
    home_team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)
    away_team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        sa.Enum('upcoming', 'live', 'finished', 'postponed', 'cancelled', name='match_status'),
        nullable=False,
        default='upcoming'
    )
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    round = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Match(id={self.id}, start_time={self.start_time}, status={self.status})>"

    def to_dict(self):
        """Convert match to dictionary for API responses"""
        return {
            "id": str(self.id),
            "competition_id": str(self.competition_id),
            "home_team_id": str(self.home_team_id),
            "away_team_id": str(self.away_team_id),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "status": self.status,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "round": self.round,
        }
