"""
Read-only statistics over bets, users and leagues.

Win rates are computed over settled bets only (won + lost); pending and void
bets never count.
"""

import logging
import math
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.bet import Bet, GroupBet
from app.models.enums import BetStatus
from app.models.league import League, LeagueMember
from app.models.match import Competition, Match
from app.models.user import User
from app.repos import bet_repo, league_repo, user_repo

logger = logging.getLogger(__name__)

TOP_BETTORS = 10
RECENT_BETS = 10
RECENT_CHALLENGES = 5
RECENT_ACTIVITY = 15


class Streak(BaseModel):
    type: str  # "win", "loss" or "none"
    count: int


class StreakSummary(BaseModel):
    current_streak: Streak
    best_win_streak: int
    worst_loss_streak: int


class TopBettor(BaseModel):
    user_id: UUID
    username: Optional[str] = None
    total_bets: int
    total_points_wagered: int
    win_rate: int


class GlobalStats(BaseModel):
    total_users: int
    total_leagues: int
    total_matches: int
    total_bets: int
    bets_by_status: Dict[str, int]
    total_points_wagered: int
    total_points_won: int
    average_bet_amount: int
    global_win_rate: int
    top_bettors: List[TopBettor]


class UserStats(BaseModel):
    user_id: UUID
    username: str
    total_bets: int
    bets_by_status: Dict[str, int]
    win_rate: int
    total_points_wagered: int
    total_points_won: int
    total_points_lost: int
    net_points: int
    average_bet_amount: int
    current_streak: Streak
    best_win_streak: int
    worst_loss_streak: int
    leagues_count: int
    favorite_sport: Optional[str] = None
    recent_bets: List[dict]


class LeagueMemberStats(BaseModel):
    user_id: UUID
    username: Optional[str] = None
    role: str
    points: int
    total_bets: int
    win_rate: int
    total_points_wagered: int
    current_streak: Streak


class LeagueActivity(BaseModel):
    type: str  # "bet" or "challenge"
    id: UUID
    user_id: UUID
    status: str
    amount: Optional[int] = None
    created_at: Optional[datetime] = None


class LeagueStats(BaseModel):
    league_id: UUID
    league_name: str
    total_members: int
    total_bets: int
    total_challenges: int
    bets_by_status: Dict[str, int]
    total_points_wagered: int
    average_bet_amount: int
    league_win_rate: int
    members: List[LeagueMemberStats]
    recent_activity: List[LeagueActivity]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_streaks(statuses: List[str]) -> StreakSummary:
    """
    Compute streaks from settled outcomes ordered most recent first.

    The current streak is the run of identical outcomes starting at the most
    recent bet. Best win and worst loss streaks are the longest runs over the
    whole history, scanned oldest to newest.

    Args:
        statuses: "won" / "lost" values, most recent first

    Returns:
        StreakSummary
    """
    if not statuses:
        return StreakSummary(current_streak=Streak(type="none", count=0), best_win_streak=0, worst_loss_streak=0)

    current_type = "win" if statuses[0] == BetStatus.WON.value else "loss"
    current_count = 0
    for status in statuses:
        if status == statuses[0]:
            current_count += 1
        else:
            break

    best_win = worst_loss = 0
    win_run = loss_run = 0
    for status in reversed(statuses):
        if status == BetStatus.WON.value:
            win_run += 1
            loss_run = 0
            best_win = max(best_win, win_run)
        else:
            loss_run += 1
            win_run = 0
            worst_loss = max(worst_loss, loss_run)

    return StreakSummary(
        current_streak=Streak(type=current_type, count=current_count),
        best_win_streak=best_win,
        worst_loss_streak=worst_loss,
    )


def win_rate(won: int, lost: int) -> int:
    """Rounded percentage of wins among settled bets; 0 with none settled."""
    settled = won + lost
    if settled == 0:
        return 0
    return _round_half_up(won * 100 / settled)


async def _average_amount(session: AsyncSession, *filters) -> int:
    average = await session.scalar(select(func.avg(Bet.amount)).where(*filters))
    return _round_half_up(float(average)) if average is not None else 0


async def get_top_bettors(session: AsyncSession) -> List[TopBettor]:
    bettors = []
    for user_id, bet_count, total_amount in await bet_repo.get_top_bettors(session, TOP_BETTORS):
        user = await user_repo.get_user_by_id(session, user_id)
        counts = await bet_repo.count_bets_by_status(session, user_id=user_id)
        bettors.append(TopBettor(
            user_id=user_id,
            username=user.username if user else None,
            total_bets=bet_count,
            total_points_wagered=int(total_amount or 0),
            win_rate=win_rate(counts[BetStatus.WON.value], counts[BetStatus.LOST.value]),
        ))
    return bettors


async def get_global_stats(session: AsyncSession) -> GlobalStats:
    """Platform-wide counters and top bettors."""
    total_users = await session.scalar(select(func.count(User.id)).where(User.is_active.is_(True)))
    total_leagues = await session.scalar(select(func.count(League.id)).where(League.is_active.is_(True)))
    total_matches = await session.scalar(select(func.count(Match.id)))
    counts = await bet_repo.count_bets_by_status(session)
    total_won = await session.scalar(
        select(func.coalesce(func.sum(Bet.actual_win), 0)).where(Bet.status == BetStatus.WON.value)
    )

    return GlobalStats(
        total_users=total_users or 0,
        total_leagues=total_leagues or 0,
        total_matches=total_matches or 0,
        total_bets=sum(counts.values()),
        bets_by_status=counts,
        total_points_wagered=await bet_repo.sum_bet_amounts(session),
        total_points_won=int(total_won or 0),
        average_bet_amount=await _average_amount(session),
        global_win_rate=win_rate(counts[BetStatus.WON.value], counts[BetStatus.LOST.value]),
        top_bettors=await get_top_bettors(session),
    )


async def get_user_stats(session: AsyncSession, user_id: UUID) -> UserStats:
    """
    Betting statistics for one user across all leagues.

    Args:
        session: Database session
        user_id: User UUID

    Returns:
        UserStats

    Raises:
        NotFoundError: if the user does not exist or is inactive
    """
    user = await user_repo.get_user_by_id(session, user_id)
    if user is None or not user.is_active:
        raise NotFoundError("User", user_id)

    counts = await bet_repo.count_bets_by_status(session, user_id=user_id)
    points_won = await bet_repo.sum_actual_wins(session, user_id)
    points_lost = int(await session.scalar(
        select(func.coalesce(func.sum(Bet.amount), 0)).where(
            Bet.user_id == user_id, Bet.status == BetStatus.LOST.value
        )
    ) or 0)
    streaks = calculate_streaks(await bet_repo.get_settled_statuses(session, user_id))
    leagues_count = await session.scalar(
        select(func.count(LeagueMember.id)).where(LeagueMember.user_id == user_id)
    )

    sport_rows = await session.execute(
        select(Competition.sport, func.count(Bet.id).label("bet_count"))
        .join(Match, Match.id == Bet.match_id)
        .join(Competition, Competition.id == Match.competition_id)
        .where(Bet.user_id == user_id)
        .group_by(Competition.sport)
        .order_by(func.count(Bet.id).desc())
        .limit(1)
    )
    favorite = sport_rows.first()

    recent = await bet_repo.get_recent_bets(session, user_id=user_id, limit=RECENT_BETS)

    return UserStats(
        user_id=user.id,
        username=user.username,
        total_bets=sum(counts.values()),
        bets_by_status=counts,
        win_rate=win_rate(counts[BetStatus.WON.value], counts[BetStatus.LOST.value]),
        total_points_wagered=await bet_repo.sum_bet_amounts(session, user_id=user_id),
        total_points_won=points_won,
        total_points_lost=points_lost,
        net_points=points_won - points_lost,
        average_bet_amount=await _average_amount(session, Bet.user_id == user_id),
        current_streak=streaks.current_streak,
        best_win_streak=streaks.best_win_streak,
        worst_loss_streak=streaks.worst_loss_streak,
        leagues_count=leagues_count or 0,
        favorite_sport=favorite[0] if favorite else None,
        recent_bets=[bet.to_dict() for bet in recent],
    )


async def _recent_activity(session: AsyncSession, league_id: UUID) -> List[LeagueActivity]:
    activity = []
    for bet in await bet_repo.get_recent_bets(session, league_id=league_id, limit=RECENT_BETS):
        activity.append(LeagueActivity(
            type="bet", id=bet.id, user_id=bet.user_id, status=bet.status,
            amount=bet.amount, created_at=bet.created_at,
        ))
    for challenge in await bet_repo.get_league_challenges(session, league_id, limit=RECENT_CHALLENGES):
        activity.append(LeagueActivity(
            type="challenge", id=challenge.id, user_id=challenge.created_by_id,
            status=challenge.status, created_at=challenge.created_at,
        ))
    activity.sort(key=lambda item: item.created_at.replace(tzinfo=None) if item.created_at else datetime.min, reverse=True)
    return activity[:RECENT_ACTIVITY]


async def get_league_stats(session: AsyncSession, league_id: UUID) -> LeagueStats:
    """
    Standings and betting statistics for one league.

    Args:
        session: Database session
        league_id: League UUID

    Returns:
        LeagueStats with members in standings order
    """
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)

    counts = await bet_repo.count_bets_by_status(session, league_id=league_id)
    total_challenges = await session.scalar(
        select(func.count(GroupBet.id)).where(GroupBet.league_id == league_id)
    )

    members = []
    for member in await league_repo.get_members(session, league_id):
        user = await user_repo.get_user_by_id(session, member.user_id)
        member_counts = await bet_repo.count_bets_by_status(session, user_id=member.user_id, league_id=league_id)
        streaks = calculate_streaks(await bet_repo.get_settled_statuses(session, member.user_id, league_id))
        members.append(LeagueMemberStats(
            user_id=member.user_id,
            username=user.username if user else None,
            role=member.role,
            points=member.points,
            total_bets=sum(member_counts.values()),
            win_rate=win_rate(member_counts[BetStatus.WON.value], member_counts[BetStatus.LOST.value]),
            total_points_wagered=await bet_repo.sum_bet_amounts(session, user_id=member.user_id, league_id=league_id),
            current_streak=streaks.current_streak,
        ))

    return LeagueStats(
        league_id=league.id,
        league_name=league.name,
        total_members=len(members),
        total_bets=sum(counts.values()),
        total_challenges=total_challenges or 0,
        bets_by_status=counts,
        total_points_wagered=await bet_repo.sum_bet_amounts(session, league_id=league_id),
        average_bet_amount=await _average_amount(session, Bet.league_id == league_id),
        league_win_rate=win_rate(counts[BetStatus.WON.value], counts[BetStatus.LOST.value]),
        members=members,
        recent_activity=await _recent_activity(session, league_id),
    )
