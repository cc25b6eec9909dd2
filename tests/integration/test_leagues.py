"""
Integration tests for the league lifecycle, plan limits and the
competition-change gate
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.errors import NotFoundError
from app.models.enums import MemberRole, RuleViolation
from app.repos import league_repo
from app.repos.audit_log_repo import get_audit_logs
from app.repos.wallet_repo import get_wallet_for_league
from app.services import leagues as league_service
from app.services.competition_gate import change_league_competition
from app.services.plans import can_add_member, check_plan_limits
from tests.fixtures.database import (
    create_test_competition, create_test_league, create_test_user, add_member,
    fill_league, set_league_plan, set_wallet,
)


@pytest.mark.integration
class TestLeagueLifecycle:

    @pytest.mark.asyncio
    async def test_create_league(self, async_session, test_user, now):
        """Creator becomes owner with starting points; wallet starts empty"""
        league = await create_test_league(async_session, test_user, now)

        assert league.plan_id == "free"
        assert len(league.invite_code) == 8
        assert league.invite_code == league.invite_code.upper()
        member = await league_repo.get_member(async_session, league.id, test_user.id)
        assert member.role == MemberRole.OWNER.value
        assert member.points == 1000
        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.balance == Decimal("0")
        assert wallet.is_frozen is False

    @pytest.mark.asyncio
    async def test_join_with_lowercase_code(self, async_session, test_user, other_user, now):
        league = await create_test_league(async_session, test_user, now)

        result = await league_service.join_league(async_session, other_user.id, league.invite_code.lower(), now)

        assert result.valid is True
        assert result.league_id == league.id
        assert await league_repo.count_members(async_session, league.id) == 2

    @pytest.mark.asyncio
    async def test_join_twice(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)

        result = await league_service.join_league(async_session, test_user.id, league.invite_code, now)

        assert result.reason == RuleViolation.ALREADY_MEMBER

    @pytest.mark.asyncio
    async def test_join_full_league(self, async_session, test_user, other_user, now):
        """The free plan caps leagues at four members"""
        league = await create_test_league(async_session, test_user, now)
        await fill_league(async_session, league, 3, now)
        assert await can_add_member(async_session, league.id) is False

        result = await league_service.join_league(async_session, other_user.id, league.invite_code, now)

        assert result.reason == RuleViolation.LEAGUE_FULL
        assert await league_repo.count_members(async_session, league.id) == 4

    @pytest.mark.asyncio
    async def test_join_unknown_code(self, async_session, test_user, now):
        with pytest.raises(NotFoundError):
            await league_service.join_league(async_session, test_user.id, "NOPE1234", now)

    @pytest.mark.asyncio
    async def test_regenerate_invite_code(self, async_session, test_user, other_user, now):
        league = await create_test_league(async_session, test_user, now, members=[other_user])
        old_code = league.invite_code

        denied = await league_service.regenerate_invite_code(async_session, league.id, other_user.id)
        result = await league_service.regenerate_invite_code(async_session, league.id, test_user.id)

        assert denied.reason == RuleViolation.NOT_AUTHORIZED
        assert result.valid is True
        assert result.invite_code != old_code
        assert await league_repo.get_league_by_invite_code(async_session, old_code) is None

    @pytest.mark.asyncio
    async def test_transfer_ownership(self, async_session, test_user, other_user, now):
        league = await create_test_league(async_session, test_user, now, members=[other_user])

        result = await league_service.transfer_ownership(async_session, league.id, test_user.id, other_user.id, now)

        assert result.valid is True
        assert league.owner_id == other_user.id
        old_owner = await league_repo.get_member(async_session, league.id, test_user.id)
        new_owner = await league_repo.get_member(async_session, league.id, other_user.id)
        assert old_owner.role == MemberRole.ADMIN.value
        assert new_owner.role == MemberRole.OWNER.value

    @pytest.mark.asyncio
    async def test_transfer_requires_owner_and_member_target(self, async_session, test_user, other_user, now):
        outsider = await create_test_user(async_session, "carol")
        league = await create_test_league(async_session, test_user, now, members=[other_user])

        by_member = await league_service.transfer_ownership(async_session, league.id, other_user.id, other_user.id, now)
        to_outsider = await league_service.transfer_ownership(async_session, league.id, test_user.id, outsider.id, now)

        assert by_member.reason == RuleViolation.NOT_AUTHORIZED
        assert to_outsider.reason == RuleViolation.NOT_A_MEMBER

    @pytest.mark.asyncio
    async def test_soft_delete(self, async_session, test_user, other_user, now):
        league = await create_test_league(async_session, test_user, now, members=[other_user])

        denied = await league_service.delete_league(async_session, league.id, other_user.id, now)
        result = await league_service.delete_league(async_session, league.id, test_user.id, now)

        assert denied.reason == RuleViolation.NOT_AUTHORIZED
        assert result.valid is True
        assert await league_repo.get_league_by_id(async_session, league.id) is None
        assert await league_repo.get_league_by_id(async_session, league.id, include_inactive=True) is not None
        with pytest.raises(NotFoundError):
            await league_service.get_league_for_member(async_session, league.id, test_user.id)


@pytest.mark.integration
class TestPlanLimits:

    @pytest.mark.asyncio
    async def test_free_league_limits(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await fill_league(async_session, league, 1, now)

        status = await check_plan_limits(async_session, league.id, now)

        assert status.plan_id == "free"
        assert status.members_used == 2
        assert status.members_limit == 4
        assert status.can_add_member is True
        assert status.can_change_competition is True
        assert status.days_until_competition_change is None
        assert status.weekly_changes_limit == 1
        assert status.is_frozen is False

    @pytest.mark.asyncio
    async def test_paid_league_reports_unlimited_changes(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "mvp")

        status = await check_plan_limits(async_session, league.id, now)

        assert status.weekly_changes_limit == -1
        assert status.members_limit == 30


@pytest.mark.integration
class TestCompetitionChange:
    """Switching the competition a league follows"""

    @pytest.mark.asyncio
    async def test_first_change_then_cooldown(self, async_session, test_user, now):
        """After a change the same day, seven days remain"""
        ligue1 = await create_test_competition(async_session)
        liga = await create_test_competition(async_session, name="La Liga")
        league = await create_test_league(async_session, test_user, now, competition=ligue1)

        first = await change_league_competition(async_session, league.id, liga.id, test_user.id, now)
        second = await change_league_competition(async_session, league.id, ligue1.id, test_user.id, now)

        assert first.valid is True
        assert league.current_competition_id == liga.id
        assert league.competition_changed_at == now
        assert second.valid is False
        assert second.reason == RuleViolation.COOLDOWN_ACTIVE
        assert second.days_remaining == 7
        assert len(await get_audit_logs(async_session, action="competition_changed")) == 1

    @pytest.mark.asyncio
    async def test_change_allowed_after_seven_days(self, async_session, test_user, now):
        ligue1 = await create_test_competition(async_session)
        liga = await create_test_competition(async_session, name="La Liga")
        league = await create_test_league(async_session, test_user, now)
        await change_league_competition(async_session, league.id, ligue1.id, test_user.id, now)

        six_days = await change_league_competition(async_session, league.id, liga.id, test_user.id, now + timedelta(days=6))
        seven_days = await change_league_competition(async_session, league.id, liga.id, test_user.id, now + timedelta(days=7))

        assert six_days.days_remaining == 1
        assert seven_days.valid is True

    @pytest.mark.asyncio
    async def test_paid_plan_changes_freely(self, async_session, test_user, now):
        ligue1 = await create_test_competition(async_session)
        liga = await create_test_competition(async_session, name="La Liga")
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "champion")

        await change_league_competition(async_session, league.id, ligue1.id, test_user.id, now)
        result = await change_league_competition(async_session, league.id, liga.id, test_user.id, now)

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_frozen_wallet_blocks_change(self, async_session, test_user, now):
        ligue1 = await create_test_competition(async_session)
        league = await create_test_league(async_session, test_user, now)
        await set_wallet(async_session, league.id, Decimal("0"), is_frozen=True)

        result = await change_league_competition(async_session, league.id, ligue1.id, test_user.id, now)

        assert result.reason == RuleViolation.WALLET_FROZEN
        assert league.current_competition_id is None

    @pytest.mark.asyncio
    async def test_only_managers_change(self, async_session, test_user, other_user, now):
        ligue1 = await create_test_competition(async_session)
        league = await create_test_league(async_session, test_user, now, members=[other_user])

        result = await change_league_competition(async_session, league.id, ligue1.id, other_user.id, now)

        assert result.reason == RuleViolation.NOT_AUTHORIZED

    @pytest.mark.asyncio
    async def test_league_admin_may_change(self, async_session, test_user, other_user, now):
        ligue1 = await create_test_competition(async_session)
        league = await create_test_league(async_session, test_user, now)
        await add_member(async_session, league, other_user, now, role=MemberRole.ADMIN)

        result = await change_league_competition(async_session, league.id, ligue1.id, other_user.id, now)

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_inactive_competition(self, async_session, test_user, now):
        retired = await create_test_competition(async_session, name="Old Cup", is_active=False)
        league = await create_test_league(async_session, test_user, now)

        result = await change_league_competition(async_session, league.id, retired.id, test_user.id, now)

        assert result.reason == RuleViolation.COMPETITION_UNAVAILABLE
