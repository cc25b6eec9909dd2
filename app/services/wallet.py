"""
League wallet ledger.

Contributions credit a league wallet, the monthly job charges the plan price,
and a failed charge either demotes the league to the free plan or freezes the
wallet. Every read-modify-write of a balance holds the wallet row lock
(``wallet_repo.lock_wallet``) until commit.

Rule violations and payment failures are returned as results, never raised.
Only missing entities raise ``NotFoundError``.
"""

import logging
import secrets
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar import first_of_next_month
from app.core.clock import ensure_aware
from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.audit_log import SCHEDULER_ACTOR, SYSTEM_ACTOR
from app.models.enums import ContributionStatus, RuleViolation
from app.models.plan import UNLIMITED
from app.repos import league_repo, user_repo, wallet_repo
from app.repos.audit_log_repo import add_audit_log
from app.services.plans import get_plan

logger = logging.getLogger(__name__)

RECENT_CONTRIBUTIONS = 5


class LedgerResult(BaseModel):
    success: bool
    reason: Optional[RuleViolation] = None
    message: Optional[str] = None


class ContributionResult(LedgerResult):
    contribution_id: Optional[UUID] = None
    payment_id: Optional[str] = None
    new_balance: Optional[Decimal] = None
    months_covered: Optional[int] = None


class PaymentResult(LedgerResult):
    league_id: Optional[UUID] = None
    amount_deducted: Decimal = Decimal("0")
    new_balance: Decimal = Decimal("0")
    next_payment_date: Optional[datetime] = None
    plan_id: Optional[str] = None


class PlanChangeResult(LedgerResult):
    previous_plan_id: Optional[str] = None
    plan_id: Optional[str] = None
    next_payment_date: Optional[datetime] = None


class ContributionInfo(BaseModel):
    id: UUID
    user_id: UUID
    username: Optional[str] = None
    amount: Decimal
    payment_method: str
    payment_id: str
    status: str
    created_at: Optional[datetime] = None


class WalletDetails(BaseModel):
    id: UUID
    league_id: UUID
    balance: Decimal
    months_covered: int
    next_payment_date: Optional[datetime] = None
    is_frozen: bool
    plan_id: str
    plan_name: str
    monthly_price: Decimal
    currency: str
    recent_contributions: List[ContributionInfo] = []


class ContributionPage(BaseModel):
    contributions: List[ContributionInfo]
    total: int
    page: int
    limit: int


class DuePaymentsSummary(BaseModel):
    processed: int
    failed: int


def months_covered(balance: Decimal, monthly_price: Decimal) -> int:
    """
    Whole months the balance pays for.

    Returns -1 for free plans, where the division has no meaning.
    """
    if monthly_price <= 0:
        return UNLIMITED
    return int((Decimal(balance) / Decimal(monthly_price)).to_integral_value(rounding=ROUND_DOWN))


def _payment_reference(now: datetime) -> str:
    return f"{settings.payment_method}_{int(now.timestamp() * 1000)}_{secrets.token_hex(5)}"


async def _require_league(session: AsyncSession, league_id: UUID):
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    return league


async def _contribution_infos(session: AsyncSession, contributions) -> List[ContributionInfo]:
    infos = []
    usernames = {}
    for contribution in contributions:
        if contribution.user_id not in usernames:
            user = await user_repo.get_user_by_id(session, contribution.user_id)
            usernames[contribution.user_id] = user.username if user else None
        infos.append(ContributionInfo(
            id=contribution.id,
            user_id=contribution.user_id,
            username=usernames[contribution.user_id],
            amount=contribution.amount,
            payment_method=contribution.payment_method,
            payment_id=contribution.payment_id,
            status=contribution.status,
            created_at=contribution.created_at,
        ))
    return infos


async def contribute(
    session: AsyncSession,
    league_id: UUID,
    user_id: UUID,
    amount,
    now: datetime
) -> ContributionResult:
    """
    Credit a league wallet with a member contribution.

    Any contribution unfreezes the wallet. When no charge is scheduled yet and
    the new balance covers a paid plan, the first charge is scheduled for the
    1st of next month.

    Args:
        session: Database session
        league_id: League UUID
        user_id: Contributing user UUID
        amount: Amount to credit (must be positive)
        now: Current time

    Returns:
        ContributionResult with the new balance and months covered
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        return ContributionResult(
            success=False,
            reason=RuleViolation.INVALID_AMOUNT,
            message="Amount must be greater than 0"
        )

    league = await _require_league(session, league_id)
    plan = await get_plan(session, league.plan_id)
    price = Decimal(plan.monthly_price)
    payment_id = _payment_reference(now)

    try:
        wallet = await wallet_repo.lock_wallet(session, league_id)

        contribution = wallet_repo.add_contribution(
            session,
            wallet,
            user_id=user_id,
            amount=amount,
            payment_method=settings.payment_method,
            payment_id=payment_id,
            status=ContributionStatus.COMPLETED.value,
            created_at=now,
        )

        was_frozen = wallet.is_frozen
        wallet.balance = Decimal(wallet.balance) + amount
        wallet.is_frozen = False

        if wallet.next_payment_date is None and price > 0 and wallet.balance >= price:
            wallet.next_payment_date = first_of_next_month(now)

        if was_frozen:
            add_audit_log(
                session,
                action="wallet_unfrozen",
                details={"league_id": str(league_id), "by": "contribution", "payment_id": payment_id},
                user_id=user_id,
                created_at=now,
            )

        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Contribution {payment_id}: +{amount} {settings.currency} to league {league_id}, balance {wallet.balance}")

    return ContributionResult(
        success=True,
        contribution_id=contribution.id,
        payment_id=payment_id,
        new_balance=wallet.balance,
        months_covered=months_covered(wallet.balance, price),
    )


async def process_monthly_payment(session: AsyncSession, league_id: UUID, now: datetime) -> PaymentResult:
    """
    Charge the monthly plan price to a league wallet.

    Free plans succeed without a charge. With an insufficient balance, a league
    small enough for the free plan is demoted to it (``downgraded``); a larger
    league gets its wallet frozen instead (``frozen``). Both are reported as
    unsuccessful payments, not raised.

    Args:
        session: Database session
        league_id: League UUID
        now: Current time

    Returns:
        PaymentResult
    """
    league = await _require_league(session, league_id)
    plan = await get_plan(session, league.plan_id)
    price = Decimal(plan.monthly_price)

    try:
        wallet = await wallet_repo.lock_wallet(session, league_id)

        if price == 0:
            await session.commit()
            return PaymentResult(
                success=True,
                league_id=league_id,
                new_balance=wallet.balance,
                next_payment_date=None,
                plan_id=plan.id,
            )

        if Decimal(wallet.balance) < price:
            free_plan = await get_plan(session, settings.free_plan_id)
            member_count = await league_repo.count_members(session, league_id)

            if member_count <= free_plan.max_members:
                league.plan_id = free_plan.id
                wallet.next_payment_date = None
                wallet.is_frozen = False
                add_audit_log(
                    session,
                    action="league_auto_downgraded",
                    details={
                        "league_id": str(league_id),
                        "from_plan": plan.id,
                        "balance": str(wallet.balance),
                        "members": member_count,
                    },
                    actor=SCHEDULER_ACTOR,
                    created_at=now,
                )
                await session.commit()
                logger.warning(f"League {league_id} auto-downgraded to {free_plan.id} (balance {wallet.balance}, {member_count} members)")
                return PaymentResult(
                    success=False,
                    reason=RuleViolation.DOWNGRADED,
                    message=f"Insufficient balance, league moved to the {free_plan.name} plan",
                    league_id=league_id,
                    new_balance=wallet.balance,
                    next_payment_date=None,
                    plan_id=free_plan.id,
                )

            wallet.is_frozen = True
            add_audit_log(
                session,
                action="wallet_frozen",
                details={
                    "league_id": str(league_id),
                    "plan": plan.id,
                    "balance": str(wallet.balance),
                    "members": member_count,
                },
                actor=SCHEDULER_ACTOR,
                created_at=now,
            )
            await session.commit()
            logger.warning(f"League {league_id} frozen (balance {wallet.balance}, {member_count} members)")
            return PaymentResult(
                success=False,
                reason=RuleViolation.FROZEN,
                message="Insufficient balance, league frozen until funds are added",
                league_id=league_id,
                new_balance=wallet.balance,
                next_payment_date=ensure_aware(wallet.next_payment_date),
                plan_id=plan.id,
            )

        wallet.balance = Decimal(wallet.balance) - price
        wallet.next_payment_date = first_of_next_month(now)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league_id} charged {price} {settings.currency}, balance {wallet.balance}")
    return PaymentResult(
        success=True,
        league_id=league_id,
        amount_deducted=price,
        new_balance=wallet.balance,
        next_payment_date=wallet.next_payment_date,
        plan_id=plan.id,
    )


async def upgrade_plan(session: AsyncSession, league_id: UUID, plan_id: str, now: datetime) -> PlanChangeResult:
    """
    Move a league to a more expensive plan.

    Args:
        session: Database session
        league_id: League UUID
        plan_id: Target plan key
        now: Current time

    Returns:
        PlanChangeResult; rejected with ``not_an_upgrade``,
        ``member_limit_exceeded`` or ``insufficient_balance``
    """
    league = await _require_league(session, league_id)
    current = await get_plan(session, league.plan_id)
    target = await get_plan(session, plan_id)

    if Decimal(target.monthly_price) <= Decimal(current.monthly_price):
        return PlanChangeResult(
            success=False,
            reason=RuleViolation.NOT_AN_UPGRADE,
            message="This plan is not an upgrade, use downgrade instead",
            plan_id=current.id,
        )

    member_count = await league_repo.count_members(session, league_id)
    if member_count > target.max_members:
        return PlanChangeResult(
            success=False,
            reason=RuleViolation.MEMBER_LIMIT_EXCEEDED,
            message=f"Plan {target.name} allows at most {target.max_members} members, league has {member_count}",
            plan_id=current.id,
        )

    try:
        wallet = await wallet_repo.lock_wallet(session, league_id)

        if Decimal(target.monthly_price) > 0 and Decimal(wallet.balance) < Decimal(target.monthly_price):
            await session.rollback()
            return PlanChangeResult(
                success=False,
                reason=RuleViolation.INSUFFICIENT_BALANCE,
                message=f"Wallet needs at least {target.monthly_price} {settings.currency} to activate this plan",
                plan_id=current.id,
            )

        league = await league_repo.get_league_for_update(session, league_id)
        league.plan_id = target.id
        if Decimal(target.monthly_price) > 0:
            wallet.next_payment_date = first_of_next_month(now)
            wallet.is_frozen = False

        add_audit_log(
            session,
            action="plan_upgraded",
            details={"league_id": str(league_id), "from_plan": current.id, "to_plan": target.id},
            created_at=now,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league_id} upgraded {current.id} -> {target.id}")
    return PlanChangeResult(
        success=True,
        previous_plan_id=current.id,
        plan_id=target.id,
        next_payment_date=ensure_aware(wallet.next_payment_date),
    )


async def downgrade_plan(session: AsyncSession, league_id: UUID, plan_id: str, now: datetime = None) -> PlanChangeResult:
    """
    Move a league to a cheaper plan.

    Args:
        session: Database session
        league_id: League UUID
        plan_id: Target plan key
        now: Current time (audit timestamp)

    Returns:
        PlanChangeResult; rejected with ``not_a_downgrade`` or
        ``member_limit_exceeded``
    """
    league = await _require_league(session, league_id)
    current = await get_plan(session, league.plan_id)
    target = await get_plan(session, plan_id)

    if Decimal(target.monthly_price) >= Decimal(current.monthly_price):
        return PlanChangeResult(
            success=False,
            reason=RuleViolation.NOT_A_DOWNGRADE,
            message="This plan is not a downgrade, use upgrade instead",
            plan_id=current.id,
        )

    member_count = await league_repo.count_members(session, league_id)
    if member_count > target.max_members:
        return PlanChangeResult(
            success=False,
            reason=RuleViolation.MEMBER_LIMIT_EXCEEDED,
            message=(
                f"Plan {target.name} allows at most {target.max_members} members, league has {member_count}. "
                "Remove members before downgrading"
            ),
            plan_id=current.id,
        )

    try:
        wallet = await wallet_repo.lock_wallet(session, league_id)
        league = await league_repo.get_league_for_update(session, league_id)
        league.plan_id = target.id
        if Decimal(target.monthly_price) == 0:
            wallet.next_payment_date = None

        add_audit_log(
            session,
            action="plan_downgraded",
            details={"league_id": str(league_id), "from_plan": current.id, "to_plan": target.id},
            created_at=now,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league_id} downgraded {current.id} -> {target.id}")
    return PlanChangeResult(
        success=True,
        previous_plan_id=current.id,
        plan_id=target.id,
        next_payment_date=ensure_aware(wallet.next_payment_date),
    )


async def _set_frozen(session: AsyncSession, league_id: UUID, frozen: bool, actor: str, now: datetime = None):
    await _require_league(session, league_id)
    try:
        wallet = await wallet_repo.lock_wallet(session, league_id)
        wallet.is_frozen = frozen
        add_audit_log(
            session,
            action="wallet_frozen" if frozen else "wallet_unfrozen",
            details={"league_id": str(league_id)},
            actor=actor,
            created_at=now,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info(f"League {league_id} wallet {'frozen' if frozen else 'unfrozen'} by {actor}")
    return wallet


async def freeze_league(session: AsyncSession, league_id: UUID, actor: str = SYSTEM_ACTOR, now: datetime = None):
    """Administrative freeze of a league wallet."""
    return await _set_frozen(session, league_id, True, actor, now)


async def unfreeze_league(session: AsyncSession, league_id: UUID, actor: str = SYSTEM_ACTOR, now: datetime = None):
    """Administrative unfreeze of a league wallet."""
    return await _set_frozen(session, league_id, False, actor, now)


async def is_league_frozen(session: AsyncSession, league_id: UUID) -> bool:
    wallet = await wallet_repo.get_wallet_for_league(session, league_id)
    return bool(wallet and wallet.is_frozen)


async def get_wallet_details(session: AsyncSession, league_id: UUID) -> WalletDetails:
    """
    Get a league wallet with its plan and latest contributions.

    Args:
        session: Database session
        league_id: League UUID

    Returns:
        WalletDetails (the wallet is created if missing)
    """
    league = await _require_league(session, league_id)
    plan = await get_plan(session, league.plan_id)
    wallet = await wallet_repo.get_or_create_wallet(session, league_id)
    contributions, _ = await wallet_repo.get_contributions(session, wallet.id, limit=RECENT_CONTRIBUTIONS)

    return WalletDetails(
        id=wallet.id,
        league_id=league_id,
        balance=wallet.balance,
        months_covered=months_covered(wallet.balance, Decimal(plan.monthly_price)),
        next_payment_date=ensure_aware(wallet.next_payment_date),
        is_frozen=wallet.is_frozen,
        plan_id=plan.id,
        plan_name=plan.name,
        monthly_price=plan.monthly_price,
        currency=settings.currency,
        recent_contributions=await _contribution_infos(session, contributions),
    )


async def get_contribution_history(
    session: AsyncSession,
    league_id: UUID,
    page: int = 1,
    limit: int = 20
) -> ContributionPage:
    """
    Get a page of a league's contributions, newest first.

    Args:
        session: Database session
        league_id: League UUID
        page: 1-based page number
        limit: Page size

    Returns:
        ContributionPage (empty when the league has no wallet yet)
    """
    await _require_league(session, league_id)
    wallet = await wallet_repo.get_wallet_for_league(session, league_id)
    if wallet is None:
        return ContributionPage(contributions=[], total=0, page=page, limit=limit)

    contributions, total = await wallet_repo.get_contributions(
        session, wallet.id, limit=limit, offset=(page - 1) * limit
    )
    return ContributionPage(
        contributions=await _contribution_infos(session, contributions),
        total=total,
        page=page,
        limit=limit,
    )


async def get_leagues_with_payments_due(session: AsyncSession, now: datetime) -> List[UUID]:
    """League IDs whose charge is due (next_payment_date <= now) and not frozen."""
    wallets = await wallet_repo.get_wallets_due(session, now)
    return [wallet.league_id for wallet in wallets]


async def process_all_due_payments(session: AsyncSession, now: datetime) -> DuePaymentsSummary:
    """
    Run the monthly charge for every league with a payment due.

    A league whose charge raises is counted as failed and does not stop the
    run.

    Args:
        session: Database session
        now: Current time

    Returns:
        DuePaymentsSummary with processed / failed counts
    """
    league_ids = await get_leagues_with_payments_due(session, now)
    processed = 0
    failed = 0

    for league_id in league_ids:
        try:
            result = await process_monthly_payment(session, league_id, now)
        except Exception as e:
            logger.error(f"Failed to process payment for league {league_id}: {e}")
            failed += 1
            continue
        if result.success:
            processed += 1
        else:
            failed += 1

    logger.info(f"Monthly payments run: {processed} processed, {failed} failed")
    return DuePaymentsSummary(processed=processed, failed=failed)
