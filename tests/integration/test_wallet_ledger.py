"""
Integration tests for the league wallet ledger: contributions, monthly
charges, automatic downgrade / freeze and plan changes
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.engine import make_url

from app.models.enums import RuleViolation
from app.repos.audit_log_repo import get_audit_logs
from app.repos.wallet_repo import get_wallet_for_league
from app.services import wallet as wallet_service
from tests.fixtures.database import create_test_league, fill_league, set_league_plan, set_wallet

APRIL_FIRST = datetime(2026, 4, 1, tzinfo=timezone.utc)
MARCH_FIRST = datetime(2026, 3, 1, tzinfo=timezone.utc)


@pytest.mark.integration
class TestContribute:
    """Crediting a league wallet"""

    @pytest.mark.asyncio
    async def test_contribution_credits_balance(self, async_session, test_user, now):
        """A contribution adds to the balance and is listed in history"""
        league = await create_test_league(async_session, test_user, now)

        result = await wallet_service.contribute(async_session, league.id, test_user.id, Decimal("12.50"), now)

        assert result.success is True
        assert result.new_balance == Decimal("12.50")
        assert result.months_covered == -1
        assert result.payment_id.startswith("mock_")

        history = await wallet_service.get_contribution_history(async_session, league.id)
        assert history.total == 1
        assert history.contributions[0].username == "alice"
        assert history.contributions[0].status == "completed"

    @pytest.mark.asyncio
    async def test_first_contribution_schedules_paid_plan_charge(self, async_session, test_user, now):
        """On a paid plan the first charge lands on the 1st of next month"""
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "champion")

        result = await wallet_service.contribute(async_session, league.id, test_user.id, 12, now)

        assert result.months_covered == 2
        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.next_payment_date == APRIL_FIRST

    @pytest.mark.asyncio
    async def test_free_plan_contribution_schedules_nothing(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)

        await wallet_service.contribute(async_session, league.id, test_user.id, 50, now)

        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.next_payment_date is None

    @pytest.mark.asyncio
    async def test_contribution_unfreezes_wallet(self, async_session, test_user, now):
        """Any positive contribution clears the freeze, even one too small for the plan"""
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "champion")
        await set_wallet(async_session, league.id, Decimal("0"), next_payment_date=MARCH_FIRST, is_frozen=True)

        result = await wallet_service.contribute(async_session, league.id, test_user.id, Decimal("1"), now)

        assert result.success is True
        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.is_frozen is False
        logs = await get_audit_logs(async_session, action="wallet_unfrozen")
        assert len(logs) == 1
        assert logs[0].details["by"] == "contribution"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, Decimal("-0.01")])
    async def test_non_positive_amount_is_rejected(self, async_session, test_user, now, amount):
        """Rejected contributions leave the wallet untouched"""
        league = await create_test_league(async_session, test_user, now)
        await set_wallet(async_session, league.id, Decimal("3"), is_frozen=True)

        result = await wallet_service.contribute(async_session, league.id, test_user.id, amount, now)

        assert result.success is False
        assert result.reason == RuleViolation.INVALID_AMOUNT
        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.balance == Decimal("3")
        assert wallet.is_frozen is True

    @pytest.mark.asyncio
    async def test_wallet_details(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "mvp")
        await wallet_service.contribute(async_session, league.id, test_user.id, 30, now)

        details = await wallet_service.get_wallet_details(async_session, league.id)

        assert details.plan_id == "mvp"
        assert details.monthly_price == Decimal("11.99")
        assert details.months_covered == 2
        assert details.currency == "EUR"
        assert len(details.recent_contributions) == 1


@pytest.mark.integration
class TestMonthlyPayment:
    """Scheduled plan charges"""

    @pytest.mark.asyncio
    async def test_charge_with_sufficient_balance(self, async_session, test_user, now):
        """Balance drops by the plan price and the next charge moves to next month's 1st"""
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "champion")
        await set_wallet(async_session, league.id, Decimal("20"), next_payment_date=MARCH_FIRST)

        result = await wallet_service.process_monthly_payment(async_session, league.id, now)

        assert result.success is True
        assert result.amount_deducted == Decimal("5.99")
        assert result.new_balance == Decimal("14.01")
        assert result.next_payment_date == APRIL_FIRST

    @pytest.mark.asyncio
    async def test_free_plan_is_not_charged(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await set_wallet(async_session, league.id, Decimal("4"))

        result = await wallet_service.process_monthly_payment(async_session, league.id, now)

        assert result.success is True
        assert result.amount_deducted == Decimal("0")
        assert result.new_balance == Decimal("4")

    @pytest.mark.asyncio
    async def test_insufficient_balance_small_league_is_downgraded(self, async_session, test_user, now):
        """Four members fit the free plan, so the league is demoted"""
        league = await create_test_league(async_session, test_user, now)
        await fill_league(async_session, league, 3, now)
        await set_league_plan(async_session, league, "champion")
        await set_wallet(async_session, league.id, Decimal("2"), next_payment_date=MARCH_FIRST)

        result = await wallet_service.process_monthly_payment(async_session, league.id, now)

        assert result.success is False
        assert result.reason == RuleViolation.DOWNGRADED
        assert result.plan_id == "free"
        assert league.plan_id == "free"
        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.is_frozen is False
        assert wallet.next_payment_date is None
        assert wallet.balance == Decimal("2")

    @pytest.mark.asyncio
    async def test_insufficient_balance_large_league_is_frozen(self, async_session, test_user, now):
        """Five members do not fit the free plan, so the wallet is frozen instead"""
        league = await create_test_league(async_session, test_user, now)
        await fill_league(async_session, league, 4, now)
        await set_league_plan(async_session, league, "champion")
        await set_wallet(async_session, league.id, Decimal("2"), next_payment_date=MARCH_FIRST)

        result = await wallet_service.process_monthly_payment(async_session, league.id, now)

        assert result.success is False
        assert result.reason == RuleViolation.FROZEN
        assert result.plan_id == "champion"
        assert league.plan_id == "champion"
        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.is_frozen is True
        assert await wallet_service.is_league_frozen(async_session, league.id) is True
        assert len(await get_audit_logs(async_session, action="wallet_frozen")) == 1

    @pytest.mark.asyncio
    async def test_process_all_due_payments(self, async_session, test_user, other_user, now):
        """Only unfrozen wallets with a due date are charged"""
        paid = await create_test_league(async_session, test_user, now, name="Paid")
        await set_league_plan(async_session, paid, "champion")
        await set_wallet(async_session, paid.id, Decimal("10"), next_payment_date=MARCH_FIRST)

        broke = await create_test_league(async_session, other_user, now, name="Broke")
        await set_league_plan(async_session, broke, "champion")
        await set_wallet(async_session, broke.id, Decimal("1"), next_payment_date=MARCH_FIRST)

        frozen = await create_test_league(async_session, test_user, now, name="Frozen")
        await set_league_plan(async_session, frozen, "champion")
        await set_wallet(async_session, frozen.id, Decimal("50"), next_payment_date=MARCH_FIRST, is_frozen=True)

        later = await create_test_league(async_session, other_user, now, name="Later")
        await set_league_plan(async_session, later, "champion")
        await set_wallet(async_session, later.id, Decimal("50"), next_payment_date=APRIL_FIRST)

        summary = await wallet_service.process_all_due_payments(async_session, now)

        assert summary.processed == 1
        assert summary.failed == 1
        assert broke.plan_id == "free"
        frozen_wallet = await get_wallet_for_league(async_session, frozen.id)
        assert frozen_wallet.balance == Decimal("50")


@pytest.mark.integration
class TestPlanChanges:
    """Upgrades and downgrades between plans"""

    @pytest.mark.asyncio
    async def test_upgrade_needs_one_month_of_balance(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)

        result = await wallet_service.upgrade_plan(async_session, league.id, "champion", now)

        assert result.success is False
        assert result.reason == RuleViolation.INSUFFICIENT_BALANCE
        assert league.plan_id == "free"

    @pytest.mark.asyncio
    async def test_upgrade_schedules_next_charge(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await set_wallet(async_session, league.id, Decimal("6"))

        result = await wallet_service.upgrade_plan(async_session, league.id, "champion", now)

        assert result.success is True
        assert result.previous_plan_id == "free"
        assert result.plan_id == "champion"
        assert result.next_payment_date == APRIL_FIRST

    @pytest.mark.asyncio
    async def test_upgrade_respects_member_cap(self, async_session, test_user, now):
        """A league larger than the target plan cannot move to it"""
        league = await create_test_league(async_session, test_user, now)
        await fill_league(async_session, league, 10, now)
        await set_wallet(async_session, league.id, Decimal("100"))

        result = await wallet_service.upgrade_plan(async_session, league.id, "champion", now)

        assert result.reason == RuleViolation.MEMBER_LIMIT_EXCEEDED

    @pytest.mark.asyncio
    async def test_downgrade_blocked_by_member_count(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await fill_league(async_session, league, 4, now)
        await set_league_plan(async_session, league, "champion")

        result = await wallet_service.downgrade_plan(async_session, league.id, "free", now)

        assert result.success is False
        assert result.reason == RuleViolation.MEMBER_LIMIT_EXCEEDED
        assert league.plan_id == "champion"

    @pytest.mark.asyncio
    async def test_downgrade_to_free_clears_schedule(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "champion")
        await set_wallet(async_session, league.id, Decimal("20"), next_payment_date=APRIL_FIRST)

        result = await wallet_service.downgrade_plan(async_session, league.id, "free", now)

        assert result.success is True
        assert result.next_payment_date is None
        wallet = await get_wallet_for_league(async_session, league.id)
        assert wallet.next_payment_date is None

    @pytest.mark.asyncio
    async def test_downgrade_between_paid_plans_keeps_schedule(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "mvp")
        await set_wallet(async_session, league.id, Decimal("20"), next_payment_date=APRIL_FIRST)

        result = await wallet_service.downgrade_plan(async_session, league.id, "champion", now)

        assert result.success is True
        assert result.previous_plan_id == "mvp"
        assert result.plan_id == "champion"
        assert result.next_payment_date == APRIL_FIRST
        assert league.plan_id == "champion"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("current, target", [
        ("free", "champion"),
        ("free", "mvp"),
        ("champion", "mvp"),
        ("champion", "free"),
        ("mvp", "free"),
        ("mvp", "champion"),
    ])
    async def test_upgrade_and_downgrade_are_complements(self, async_session, test_user, now, current, target):
        """For any pair of plans exactly one of upgrade and downgrade passes its price check"""
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, current)
        await set_wallet(async_session, league.id, Decimal("100"))

        upgrade = await wallet_service.upgrade_plan(async_session, league.id, target, now)
        if upgrade.success:
            await set_league_plan(async_session, league, current)
        downgrade = await wallet_service.downgrade_plan(async_session, league.id, target, now)

        assert upgrade.success != downgrade.success
        if not upgrade.success:
            assert upgrade.reason == RuleViolation.NOT_AN_UPGRADE
        if not downgrade.success:
            assert downgrade.reason == RuleViolation.NOT_A_DOWNGRADE


@pytest.mark.integration
class TestAdminFreeze:

    @pytest.mark.asyncio
    async def test_freeze_and_unfreeze(self, async_session, test_user, now):
        league = await create_test_league(async_session, test_user, now)

        wallet = await wallet_service.freeze_league(async_session, league.id, actor="admin", now=now)
        assert wallet.is_frozen is True

        wallet = await wallet_service.unfreeze_league(async_session, league.id, actor="admin", now=now)
        assert wallet.is_frozen is False

        logs = await get_audit_logs(async_session)
        assert {log.action for log in logs} >= {"wallet_frozen", "wallet_unfrozen"}


@pytest.mark.integration
@pytest.mark.slow
class TestConcurrentLedger:
    """Row locks serialize wallet writers; needs a PostgreSQL --db-url"""

    @pytest.fixture(autouse=True)
    def require_row_locks(self, db_url):
        if make_url(db_url).get_backend_name() == "sqlite":
            pytest.skip("SQLite has no SELECT FOR UPDATE row locks")

    @pytest.mark.asyncio
    async def test_contributions_racing_a_monthly_charge(self, async_session, session_factory, test_user, now):
        league = await create_test_league(async_session, test_user, now)
        await set_league_plan(async_session, league, "champion")
        await set_wallet(async_session, league.id, Decimal("20"), next_payment_date=MARCH_FIRST)

        async def contribute(amount):
            async with session_factory() as session:
                return await wallet_service.contribute(session, league.id, test_user.id, amount, now)

        async def charge():
            async with session_factory() as session:
                return await wallet_service.process_monthly_payment(session, league.id, now)

        results = await asyncio.gather(charge(), *[contribute(Decimal("2")) for _ in range(5)])

        assert all(result.success for result in results)
        async with session_factory() as session:
            wallet = await get_wallet_for_league(session, league.id)
            history = await wallet_service.get_contribution_history(session, league.id)
        assert Decimal(wallet.balance) == Decimal("20") + Decimal("10") - Decimal("5.99")
        assert history.total == 5
