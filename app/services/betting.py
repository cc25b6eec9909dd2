"""
Bet placement, challenges and settlement.

Placing a bet runs the betting window, the weekly limiter and the prediction
validator in that order, then deducts the stake from the member's points and
stores the bet in one transaction.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import ensure_aware
from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.bet import Bet, GroupBet
from app.models.enums import BetStatus, GroupBetStatus, MatchStatus, RuleViolation
from app.repos import bet_repo, league_repo, match_repo
from app.repos.audit_log_repo import add_audit_log
from app.services.betting_window import is_bettable, calculate_closes_at
from app.services.predictions import (
    validate_prediction, serialize_prediction, match_outcome, is_winning_prediction
)
from app.services.results import RuleResult
from app.services.weekly_limit import WeeklyBetStatus, get_weekly_bet_status, can_place_bet

logger = logging.getLogger(__name__)


class BetResult(RuleResult):
    bet_id: Optional[UUID] = None
    potential_win: Optional[int] = None
    remaining_points: Optional[int] = None
    days_until_open: Optional[int] = None
    weekly_status: Optional[WeeklyBetStatus] = None


class ChallengeResult(RuleResult):
    challenge_id: Optional[UUID] = None
    closes_at: Optional[datetime] = None
    days_until_open: Optional[int] = None


class SettlementSummary(BaseModel):
    challenge_id: UUID
    status: str
    outcome: Optional[str] = None
    won: int = 0
    lost: int = 0
    void: int = 0
    points_paid: int = 0


def potential_win_for(amount: int) -> int:
    return amount * settings.default_payout_multiplier


def _check_match_in_competition(league, match) -> Optional[RuleResult]:
    if league.current_competition_id and match.competition_id != league.current_competition_id:
        return RuleResult.reject(
            RuleViolation.MATCH_NOT_IN_COMPETITION,
            "This match is not part of the league's current competition"
        )
    return None


async def _validate_bet(
    session: AsyncSession,
    user_id: UUID,
    league_id: UUID,
    match,
    prediction_type: str,
    prediction_value,
    amount: int,
    now: datetime
) -> Tuple[Optional[BetResult], Optional[WeeklyBetStatus]]:
    """Run window, weekly limit and prediction checks; returns (rejection, status)."""
    window = is_bettable(match.start_time, now)
    if not window.valid:
        return BetResult.reject(window.reason, window.message, days_until_open=window.days_until_open), None

    status = await get_weekly_bet_status(session, user_id, league_id, now)
    if not can_place_bet(status):
        return BetResult.reject(
            RuleViolation.WEEKLY_LIMIT_REACHED,
            f"Weekly limit of {status.limit} bets reached, resets on {status.resets_at:%Y-%m-%d}",
            weekly_status=status,
        ), status

    prediction = validate_prediction(prediction_type, prediction_value)
    if not prediction.valid:
        return BetResult.reject(prediction.reason, prediction.message), status

    return None, status


async def _persist_bet(
    session: AsyncSession,
    user_id: UUID,
    league_id: UUID,
    match_id: UUID,
    group_bet_id: Optional[UUID],
    prediction_type: str,
    prediction_value,
    amount: int,
    now: datetime
) -> BetResult:
    try:
        member = await league_repo.get_member_for_update(session, league_id, user_id)
        if member.points < amount:
            await session.rollback()
            return BetResult.reject(
                RuleViolation.INSUFFICIENT_POINTS,
                f"Not enough points: {member.points} available, {amount} required"
            )

        bet = Bet(
            user_id=user_id,
            match_id=match_id,
            league_id=league_id,
            group_bet_id=group_bet_id,
            prediction_type=prediction_type,
            prediction_value=serialize_prediction(prediction_value),
            amount=amount,
            status=BetStatus.PENDING.value,
            potential_win=potential_win_for(amount),
            created_at=now,
        )
        member.points -= amount
        session.add(bet)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        if group_bet_id is not None:
            return BetResult.reject(RuleViolation.ALREADY_BET, "You already placed a bet on this challenge")
        raise
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Bet {bet.id} placed by {user_id} in league {league_id}: {amount} points")
    return BetResult.ok(bet_id=bet.id, potential_win=bet.potential_win, remaining_points=member.points)


async def place_bet(
    session: AsyncSession,
    user_id: UUID,
    league_id: UUID,
    match_id: UUID,
    prediction_type: str,
    prediction_value,
    amount: int,
    now: datetime
) -> BetResult:
    """
    Place a bet on a match in a league.

    Args:
        session: Database session
        user_id: Betting user UUID
        league_id: League UUID
        match_id: Match UUID
        prediction_type: Declared prediction type
        prediction_value: Prediction payload (JSON text or dict)
        amount: Points wagered
        now: Current time

    Returns:
        BetResult
    """
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    if await league_repo.get_member(session, league_id, user_id) is None:
        return BetResult.reject(RuleViolation.NOT_A_MEMBER, "You are not a member of this league")
    if amount is None or amount <= 0:
        return BetResult.reject(RuleViolation.INVALID_AMOUNT, "Amount must be greater than 0")

    match = await match_repo.get_match_by_id(session, match_id)
    if match is None:
        raise NotFoundError("Match", match_id)
    rejection = _check_match_in_competition(league, match)
    if rejection:
        return BetResult.reject(rejection.reason, rejection.message)

    rejection, _ = await _validate_bet(
        session, user_id, league_id, match, prediction_type, prediction_value, amount, now
    )
    if rejection:
        return rejection

    return await _persist_bet(
        session, user_id, league_id, match_id, None, prediction_type, prediction_value, amount, now
    )


async def create_challenge(
    session: AsyncSession,
    league_id: UUID,
    match_id: UUID,
    user_id: UUID,
    now: datetime
) -> ChallengeResult:
    """
    Open a challenge on a match for a league.

    The closing time is always kickoff minus 10 minutes.

    Args:
        session: Database session
        league_id: League UUID
        match_id: Match UUID
        user_id: Creating member UUID
        now: Current time

    Returns:
        ChallengeResult
    """
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    if await league_repo.get_member(session, league_id, user_id) is None:
        return ChallengeResult.reject(RuleViolation.NOT_A_MEMBER, "You are not a member of this league")

    match = await match_repo.get_match_by_id(session, match_id)
    if match is None:
        raise NotFoundError("Match", match_id)
    rejection = _check_match_in_competition(league, match)
    if rejection:
        return ChallengeResult.reject(rejection.reason, rejection.message)

    window = is_bettable(match.start_time, now)
    if not window.valid:
        return ChallengeResult.reject(window.reason, window.message, days_until_open=window.days_until_open)

    if await bet_repo.get_challenge_for_match(session, league_id, match_id) is not None:
        return ChallengeResult.reject(RuleViolation.CHALLENGE_EXISTS, "A challenge already exists for this match")

    closes_at = calculate_closes_at(match.start_time)
    challenge = GroupBet(
        league_id=league_id,
        match_id=match_id,
        created_by_id=user_id,
        status=GroupBetStatus.OPEN.value,
        closes_at=closes_at,
        created_at=now,
    )
    try:
        session.add(challenge)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return ChallengeResult.reject(RuleViolation.CHALLENGE_EXISTS, "A challenge already exists for this match")
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Challenge {challenge.id} opened in league {league_id} on match {match_id}")
    return ChallengeResult.ok(challenge_id=challenge.id, closes_at=closes_at)


async def place_challenge_bet(
    session: AsyncSession,
    user_id: UUID,
    league_id: UUID,
    group_bet_id: UUID,
    prediction_type: str,
    prediction_value,
    amount: int,
    now: datetime
) -> BetResult:
    """
    Bet on an open challenge.

    One bet per member per challenge; the challenge must be open and before
    its closing time.

    Args:
        session: Database session
        user_id: Betting user UUID
        league_id: League UUID
        group_bet_id: Challenge UUID
        prediction_type: Declared prediction type
        prediction_value: Prediction payload
        amount: Points wagered
        now: Current time

    Returns:
        BetResult
    """
    if await league_repo.get_member(session, league_id, user_id) is None:
        return BetResult.reject(RuleViolation.NOT_A_MEMBER, "You are not a member of this league")
    if amount is None or amount <= 0:
        return BetResult.reject(RuleViolation.INVALID_AMOUNT, "Amount must be greater than 0")

    challenge = await bet_repo.get_challenge_by_id(session, group_bet_id)
    if challenge is None or challenge.league_id != league_id:
        raise NotFoundError("Challenge", group_bet_id)

    if challenge.status != GroupBetStatus.OPEN.value or ensure_aware(now) >= ensure_aware(challenge.closes_at):
        return BetResult.reject(RuleViolation.CHALLENGE_CLOSED, "This challenge is closed")

    match = await match_repo.get_match_by_id(session, challenge.match_id)
    if match is None:
        raise NotFoundError("Match", challenge.match_id)

    if await bet_repo.get_user_bet_on_challenge(session, group_bet_id, user_id) is not None:
        return BetResult.reject(RuleViolation.ALREADY_BET, "You already placed a bet on this challenge")

    rejection, _ = await _validate_bet(
        session, user_id, league_id, match, prediction_type, prediction_value, amount, now
    )
    if rejection:
        return rejection

    return await _persist_bet(
        session, user_id, league_id, challenge.match_id, group_bet_id,
        prediction_type, prediction_value, amount, now
    )


async def close_expired_challenges(session: AsyncSession, now: datetime) -> int:
    """Close open challenges whose closing time is at or before ``now``."""
    closed = await bet_repo.close_expired_challenges(session, now)
    if closed:
        logger.info(f"Closed {closed} expired challenge(s)")
    return closed


def _apply_settlement(bet: Bet, status: BetStatus, now: datetime) -> int:
    """Move a pending bet to a terminal status; returns points to credit."""
    bet.status = status.value
    bet.settled_at = now
    if status == BetStatus.WON:
        bet.actual_win = bet.potential_win or 0
    elif status == BetStatus.VOID:
        bet.actual_win = bet.amount
    else:
        bet.actual_win = 0
    return bet.actual_win


async def settle_bet(
    session: AsyncSession,
    bet_id: UUID,
    status: BetStatus,
    now: datetime
) -> Tuple[bool, Optional[str]]:
    """
    Settle a single bet exactly once.

    Won bets credit ``potential_win`` points to the member, void bets refund
    the stake, lost bets credit nothing.

    Args:
        session: Database session
        bet_id: Bet UUID
        status: Terminal status (won, lost or void)
        now: Current time

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if status == BetStatus.PENDING:
        return False, "Settlement status must be won, lost or void"

    try:
        bet = await bet_repo.get_bet_for_update(session, bet_id)
        if bet is None:
            raise NotFoundError("Bet", bet_id)
        if bet.status != BetStatus.PENDING.value:
            await session.rollback()
            return False, f"Bet already settled as {bet.status}"

        credit = _apply_settlement(bet, status, now)
        if credit:
            member = await league_repo.get_member_for_update(session, bet.league_id, bet.user_id)
            if member is not None:
                member.points += credit
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Bet {bet_id} settled as {status.value}")
    return True, None


async def settle_challenge(session: AsyncSession, group_bet_id: UUID, now: datetime) -> Tuple[Optional[SettlementSummary], Optional[RuleResult]]:
    """
    Settle a challenge from its match result.

    Finished matches mark pending bets won or lost against the final score;
    cancelled matches void them. Settling an already settled challenge returns
    its current summary.

    Args:
        session: Database session
        group_bet_id: Challenge UUID
        now: Current time

    Returns:
        Tuple of (summary, rejection); exactly one is set
    """
    challenge = await bet_repo.get_challenge_by_id(session, group_bet_id)
    if challenge is None:
        raise NotFoundError("Challenge", group_bet_id)

    if challenge.status == GroupBetStatus.SETTLED.value:
        return await _existing_summary(session, challenge), None

    match = await match_repo.get_match_by_id(session, challenge.match_id)
    if match is None:
        raise NotFoundError("Match", challenge.match_id)

    if match.status == MatchStatus.CANCELLED.value:
        outcome = None
    elif match.status == MatchStatus.FINISHED.value and match.home_score is not None and match.away_score is not None:
        outcome = match_outcome(match.home_score, match.away_score)
    else:
        return None, RuleResult.reject(RuleViolation.MATCH_NOT_FINISHED, "Match has no final result yet")

    summary = SettlementSummary(
        challenge_id=group_bet_id,
        status=GroupBetStatus.SETTLED.value,
        outcome=outcome.value if outcome else None,
    )

    try:
        challenge = await bet_repo.get_challenge_for_update(session, group_bet_id)
        bets = await bet_repo.get_pending_challenge_bets_for_update(session, group_bet_id)

        for bet in bets:
            if outcome is None:
                status = BetStatus.VOID
            elif is_winning_prediction(bet.prediction_value, outcome):
                status = BetStatus.WON
            else:
                status = BetStatus.LOST

            credit = _apply_settlement(bet, status, now)
            if credit:
                member = await league_repo.get_member_for_update(session, bet.league_id, bet.user_id)
                if member is not None:
                    member.points += credit
            if status == BetStatus.WON:
                summary.won += 1
                summary.points_paid += credit
            elif status == BetStatus.LOST:
                summary.lost += 1
            else:
                summary.void += 1

        challenge.status = GroupBetStatus.SETTLED.value
        challenge.settled_at = now
        add_audit_log(
            session,
            action="challenge_settled",
            details=summary.model_dump(mode="json"),
            created_at=now,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Challenge {group_bet_id} settled: {summary.won} won, {summary.lost} lost, {summary.void} void")
    return summary, None


async def _existing_summary(session: AsyncSession, challenge: GroupBet) -> SettlementSummary:
    bets = await bet_repo.get_challenge_bets(session, challenge.id)
    summary = SettlementSummary(challenge_id=challenge.id, status=challenge.status)
    for bet in bets:
        if bet.status == BetStatus.WON.value:
            summary.won += 1
            summary.points_paid += bet.actual_win or 0
        elif bet.status == BetStatus.LOST.value:
            summary.lost += 1
        elif bet.status == BetStatus.VOID.value:
            summary.void += 1
    return summary


async def get_challenge_detail(session: AsyncSession, league_id: UUID, group_bet_id: UUID) -> dict:
    """Challenge with its match and bet count."""
    challenge = await bet_repo.get_challenge_by_id(session, group_bet_id)
    if challenge is None or challenge.league_id != league_id:
        raise NotFoundError("Challenge", group_bet_id)
    match = await match_repo.get_match_by_id(session, challenge.match_id)
    detail = challenge.to_dict()
    detail["match"] = match.to_dict() if match else None
    detail["bet_count"] = await bet_repo.count_challenge_bets(session, group_bet_id)
    return detail


async def list_challenges(
    session: AsyncSession,
    league_id: UUID,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20
) -> List[GroupBet]:
    return await bet_repo.get_league_challenges(
        session, league_id, status=status, limit=limit, offset=(page - 1) * limit
    )


async def list_active_challenges(session: AsyncSession, league_id: UUID, now: datetime) -> List[GroupBet]:
    return await bet_repo.get_active_challenges(session, league_id, now)
