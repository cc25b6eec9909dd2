"""
Integration tests for bet placement, challenges and settlement
"""

import json
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.core.errors import NotFoundError
from app.models.enums import BetStatus, GroupBetStatus, MatchStatus, RuleViolation
from app.repos import bet_repo
from app.services import betting
from app.services.weekly_limit import get_weekly_bet_status
from tests.fixtures.database import (
    create_test_competition, create_test_match, create_test_league, create_test_bet,
    add_member, finish_match, set_league_plan, get_member_points,
)

HOME = json.dumps({"type": "winner", "value": "home"})
AWAY = json.dumps({"type": "winner", "value": "away"})


@pytest.fixture
async def competition(async_session):
    return await create_test_competition(async_session)


@pytest.fixture
async def match(async_session, competition, now):
    return await create_test_match(async_session, competition, now + timedelta(days=2))


@pytest.fixture
async def league(async_session, test_user, competition, now):
    return await create_test_league(async_session, test_user, now, competition=competition)


@pytest.mark.integration
class TestPlaceBet:
    """Direct bets: window, weekly limit, prediction, then points"""

    @pytest.mark.asyncio
    async def test_successful_bet_deducts_points(self, async_session, test_user, league, match, now):
        result = await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, 100, now)

        assert result.valid is True
        assert result.potential_win == 200
        assert result.remaining_points == 900
        bet = await bet_repo.get_bet_for_update(async_session, result.bet_id)
        assert bet.status == BetStatus.PENDING.value
        assert json.loads(bet.prediction_value) == {"type": "winner", "value": "home"}

    @pytest.mark.asyncio
    async def test_dict_prediction_is_stored_as_json(self, async_session, test_user, league, match, now):
        result = await betting.place_bet(
            async_session, test_user.id, league.id, match.id, "winner", {"type": "winner", "value": "draw"}, 50, now
        )
        bet = await bet_repo.get_bet_for_update(async_session, result.bet_id)
        assert bet.prediction_value == '{"type": "winner", "value": "draw"}'

    @pytest.mark.asyncio
    async def test_weekly_limit_on_free_plan(self, async_session, test_user, league, competition, match, now):
        """The free plan allows one bet per calendar week"""
        other_match = await create_test_match(async_session, competition, now + timedelta(days=3))
        await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, 100, now)

        result = await betting.place_bet(async_session, test_user.id, league.id, other_match.id, "winner", AWAY, 100, now)

        assert result.valid is False
        assert result.reason == RuleViolation.WEEKLY_LIMIT_REACHED
        assert result.weekly_status.used == 1
        assert result.weekly_status.limit == 1
        assert result.weekly_status.remaining == 0
        assert await get_member_points(async_session, league.id, test_user.id) == 900

    @pytest.mark.asyncio
    async def test_weekly_limit_resets_next_week(self, async_session, test_user, league, competition, match, now):
        """The count is a function of now only; nothing is stored per week"""
        await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, 100, now)
        next_week = now + timedelta(days=7)
        later_match = await create_test_match(async_session, competition, next_week + timedelta(days=1))

        result = await betting.place_bet(async_session, test_user.id, league.id, later_match.id, "winner", HOME, 100, next_week)

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_sunday_and_monday_bets_count_in_different_weeks(self, async_session, test_user, league, competition, match):
        sunday = datetime(2026, 3, 15, 23, 59, 59, tzinfo=timezone.utc)
        monday = datetime(2026, 3, 16, 0, 0, 1, tzinfo=timezone.utc)
        await create_test_bet(async_session, test_user, league, match, created_at=sunday)
        monday_match = await create_test_match(async_session, competition, monday + timedelta(days=2))

        status = await get_weekly_bet_status(async_session, test_user.id, league.id, monday)
        assert status.used == 0

        result = await betting.place_bet(async_session, test_user.id, league.id, monday_match.id, "winner", HOME, 10, monday)
        assert result.valid is True

    @pytest.mark.asyncio
    async def test_unlimited_plan_has_no_weekly_limit(self, async_session, test_user, league, competition, now):
        await set_league_plan(async_session, league, "champion")

        for day in range(1, 5):
            fixture = await create_test_match(async_session, competition, now + timedelta(days=day))
            result = await betting.place_bet(async_session, test_user.id, league.id, fixture.id, "winner", HOME, 10, now)
            assert result.valid is True

        status = await get_weekly_bet_status(async_session, test_user.id, league.id, now)
        assert status.used == 4
        assert status.is_unlimited is True
        assert status.remaining == -1

    @pytest.mark.asyncio
    async def test_too_early(self, async_session, test_user, league, competition, now):
        far_match = await create_test_match(async_session, competition, now + timedelta(days=10))

        result = await betting.place_bet(async_session, test_user.id, league.id, far_match.id, "winner", HOME, 10, now)

        assert result.reason == RuleViolation.TOO_EARLY
        assert result.days_until_open == 3

    @pytest.mark.asyncio
    async def test_window_closed(self, async_session, test_user, league, competition, now):
        soon = await create_test_match(async_session, competition, now + timedelta(minutes=5))

        result = await betting.place_bet(async_session, test_user.id, league.id, soon.id, "winner", HOME, 10, now)

        assert result.reason == RuleViolation.WINDOW_CLOSED

    @pytest.mark.asyncio
    async def test_window_checked_before_weekly_limit(self, async_session, test_user, league, competition, match, now):
        """A closed window is reported even when the weekly limit is also exhausted"""
        await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, 10, now)
        soon = await create_test_match(async_session, competition, now + timedelta(minutes=5))

        result = await betting.place_bet(async_session, test_user.id, league.id, soon.id, "winner", HOME, 10, now)

        assert result.reason == RuleViolation.WINDOW_CLOSED

    @pytest.mark.asyncio
    async def test_invalid_prediction(self, async_session, test_user, league, match, now):
        payload = json.dumps({"type": "winner", "value": "win"})

        result = await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", payload, 10, now)

        assert result.reason == RuleViolation.INVALID_PREDICTION_VALUE
        assert await get_member_points(async_session, league.id, test_user.id) == 1000

    @pytest.mark.asyncio
    async def test_insufficient_points(self, async_session, test_user, league, match, now):
        result = await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, 5000, now)

        assert result.reason == RuleViolation.INSUFFICIENT_POINTS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -10])
    async def test_non_positive_amount(self, async_session, test_user, league, match, now, amount):
        result = await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, amount, now)

        assert result.reason == RuleViolation.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_non_member(self, async_session, other_user, league, match, now):
        result = await betting.place_bet(async_session, other_user.id, league.id, match.id, "winner", HOME, 10, now)

        assert result.reason == RuleViolation.NOT_A_MEMBER

    @pytest.mark.asyncio
    async def test_match_from_another_competition(self, async_session, test_user, league, now):
        cup = await create_test_competition(async_session, name="Coupe de France")
        cup_match = await create_test_match(async_session, cup, now + timedelta(days=1))

        result = await betting.place_bet(async_session, test_user.id, league.id, cup_match.id, "winner", HOME, 10, now)

        assert result.reason == RuleViolation.MATCH_NOT_IN_COMPETITION

    @pytest.mark.asyncio
    async def test_unknown_match_raises(self, async_session, test_user, league, now):
        with pytest.raises(NotFoundError):
            await betting.place_bet(async_session, test_user.id, league.id, uuid4(), "winner", HOME, 10, now)


@pytest.mark.integration
class TestChallenges:
    """League challenges on a single match"""

    @pytest.mark.asyncio
    async def test_create_challenge_closes_ten_minutes_before_kickoff(self, async_session, test_user, league, match, now):
        result = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)

        assert result.valid is True
        assert result.closes_at == match.start_time - timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_one_challenge_per_match(self, async_session, test_user, league, match, now):
        await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)

        result = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)

        assert result.reason == RuleViolation.CHALLENGE_EXISTS

    @pytest.mark.asyncio
    async def test_challenge_outside_window(self, async_session, test_user, league, competition, now):
        far_match = await create_test_match(async_session, competition, now + timedelta(days=9))

        result = await betting.create_challenge(async_session, league.id, far_match.id, test_user.id, now)

        assert result.reason == RuleViolation.TOO_EARLY
        assert result.days_until_open == 2

    @pytest.mark.asyncio
    async def test_one_bet_per_member(self, async_session, test_user, league, match, now):
        await set_league_plan(async_session, league, "champion")
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)

        first = await betting.place_challenge_bet(
            async_session, test_user.id, league.id, challenge.challenge_id, "winner", HOME, 100, now
        )
        second = await betting.place_challenge_bet(
            async_session, test_user.id, league.id, challenge.challenge_id, "winner", AWAY, 100, now
        )

        assert first.valid is True
        assert second.reason == RuleViolation.ALREADY_BET
        assert await bet_repo.count_challenge_bets(async_session, challenge.challenge_id) == 1

    @pytest.mark.asyncio
    async def test_bet_after_closing_time(self, async_session, test_user, league, match, now):
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)

        result = await betting.place_challenge_bet(
            async_session, test_user.id, league.id, challenge.challenge_id, "winner", HOME, 100, challenge.closes_at
        )

        assert result.reason == RuleViolation.CHALLENGE_CLOSED

    @pytest.mark.asyncio
    async def test_close_expired_challenges(self, async_session, test_user, league, match, now):
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)

        assert await betting.close_expired_challenges(async_session, now) == 0
        assert await betting.close_expired_challenges(async_session, challenge.closes_at) == 1

        stored = await bet_repo.get_challenge_by_id(async_session, challenge.challenge_id)
        await async_session.refresh(stored)
        assert stored.status == GroupBetStatus.CLOSED.value

    @pytest.mark.asyncio
    async def test_active_challenges(self, async_session, test_user, league, match, now):
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)

        active = await betting.list_active_challenges(async_session, league.id, now)
        assert [c.id for c in active] == [challenge.challenge_id]
        assert await betting.list_active_challenges(async_session, league.id, challenge.closes_at) == []

    @pytest.mark.asyncio
    async def test_challenge_detail(self, async_session, test_user, league, match, now):
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)
        await betting.place_challenge_bet(
            async_session, test_user.id, league.id, challenge.challenge_id, "winner", HOME, 100, now
        )

        detail = await betting.get_challenge_detail(async_session, league.id, challenge.challenge_id)

        assert detail["bet_count"] == 1
        assert detail["match"]["id"] == str(match.id)
        assert detail["status"] == "open"


@pytest.mark.integration
class TestSettlement:
    """Settling challenges and single bets"""

    @pytest.mark.asyncio
    async def test_settle_challenge_pays_winners(self, async_session, test_user, other_user, league, match, now):
        await add_member(async_session, league, other_user, now)
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)
        await betting.place_challenge_bet(async_session, test_user.id, league.id, challenge.challenge_id, "winner", HOME, 100, now)
        await betting.place_challenge_bet(async_session, other_user.id, league.id, challenge.challenge_id, "winner", AWAY, 100, now)

        summary, rejection = await betting.settle_challenge(async_session, challenge.challenge_id, now)
        assert summary is None
        assert rejection.reason == RuleViolation.MATCH_NOT_FINISHED

        await finish_match(async_session, match, 2, 1)
        settled_at = match.start_time + timedelta(hours=2)
        summary, rejection = await betting.settle_challenge(async_session, challenge.challenge_id, settled_at)

        assert rejection is None
        assert summary.outcome == "home"
        assert summary.won == 1
        assert summary.lost == 1
        assert summary.points_paid == 200
        assert await get_member_points(async_session, league.id, test_user.id) == 1100
        assert await get_member_points(async_session, league.id, other_user.id) == 900

    @pytest.mark.asyncio
    async def test_settlement_is_idempotent(self, async_session, test_user, league, match, now):
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)
        await betting.place_challenge_bet(async_session, test_user.id, league.id, challenge.challenge_id, "winner", HOME, 100, now)
        await finish_match(async_session, match, 3, 0)

        first, _ = await betting.settle_challenge(async_session, challenge.challenge_id, now)
        again, _ = await betting.settle_challenge(async_session, challenge.challenge_id, now)

        assert again.status == GroupBetStatus.SETTLED.value
        assert again.won == first.won == 1
        assert again.points_paid == 200
        assert await get_member_points(async_session, league.id, test_user.id) == 1100

    @pytest.mark.asyncio
    async def test_cancelled_match_refunds_stakes(self, async_session, test_user, league, match, now):
        challenge = await betting.create_challenge(async_session, league.id, match.id, test_user.id, now)
        await betting.place_challenge_bet(async_session, test_user.id, league.id, challenge.challenge_id, "winner", HOME, 100, now)
        match.status = MatchStatus.CANCELLED.value
        await async_session.commit()

        summary, _ = await betting.settle_challenge(async_session, challenge.challenge_id, now)

        assert summary.void == 1
        assert summary.outcome is None
        assert await get_member_points(async_session, league.id, test_user.id) == 1000

    @pytest.mark.asyncio
    async def test_settle_single_bet_once(self, async_session, test_user, league, match, now):
        placed = await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, 100, now)

        ok, error = await betting.settle_bet(async_session, placed.bet_id, BetStatus.WON, now)
        assert ok is True
        assert error is None

        ok, error = await betting.settle_bet(async_session, placed.bet_id, BetStatus.LOST, now)
        assert ok is False
        assert "already settled" in error
        assert await get_member_points(async_session, league.id, test_user.id) == 1100

    @pytest.mark.asyncio
    async def test_settle_bet_rejects_pending(self, async_session, test_user, league, match, now):
        placed = await betting.place_bet(async_session, test_user.id, league.id, match.id, "winner", HOME, 100, now)

        ok, _ = await betting.settle_bet(async_session, placed.bet_id, BetStatus.PENDING, now)

        assert ok is False
