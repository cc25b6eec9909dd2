"""
League wallet repository with row-locked access for balance operations
"""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID
from decimal import Decimal
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc

from app.models.wallet import LeagueWallet, Contribution

# Configure logging
logger = logging.getLogger(__name__)


async def get_wallet_for_league(session: AsyncSession, league_id: UUID) -> Optional[LeagueWallet]:
    """
    Get wallet for a specific league.

    Args:
        session: Database session
        league_id: League UUID

    Returns:
        LeagueWallet instance or None if not created yet
    """
    result = await session.execute(
        select(LeagueWallet).where(LeagueWallet.league_id == league_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_wallet(session: AsyncSession, league_id: UUID) -> LeagueWallet:
    """
    Get the league wallet, creating an empty one on first access.

    Args:
        session: Database session
        league_id: League UUID

    Returns:
        Existing or newly created LeagueWallet
    """
    existing_wallet = await get_wallet_for_league(session, league_id)
    if existing_wallet:
        return existing_wallet

    wallet = LeagueWallet(
        league_id=league_id,
        balance=Decimal('0'),
        next_payment_date=None,
        is_frozen=False
    )
    session.add(wallet)
    await session.commit()
    await session.refresh(wallet)
    logger.info(f"Created wallet {wallet.id} for league {league_id}")
    return wallet


async def lock_wallet(session: AsyncSession, league_id: UUID) -> LeagueWallet:
    """
    Lock the league wallet row for a read-modify-write.

    Uses SELECT FOR UPDATE so concurrent contributions and charges on the
    same wallet are serialized. The wallet is created first when missing.
    The lock is held until the caller commits or rolls back.

    Args:
        session: Database session
        league_id: League UUID

    Returns:
        Locked LeagueWallet instance
    """
    result = await session.execute(
        select(LeagueWallet)
        .where(LeagueWallet.league_id == league_id)
        .with_for_update()
    )
    wallet = result.scalar_one_or_none()
    if wallet is None:
        await get_or_create_wallet(session, league_id)
        result = await session.execute(
            select(LeagueWallet)
            .where(LeagueWallet.league_id == league_id)
            .with_for_update()
        )
        wallet = result.scalar_one()
    return wallet


def add_contribution(
    session: AsyncSession,
    wallet: LeagueWallet,
    user_id: UUID,
    amount: Decimal,
    payment_method: str,
    payment_id: str,
    status: str,
    created_at: datetime
) -> Contribution:
    """Stage a contribution row in the caller's transaction."""
    contribution = Contribution(
        wallet_id=wallet.id,
        user_id=user_id,
        amount=amount,
        payment_method=payment_method,
        payment_id=payment_id,
        status=status,
        created_at=created_at
    )
    session.add(contribution)
    return contribution


async def get_contributions(
    session: AsyncSession,
    wallet_id: UUID,
    limit: int = 20,
    offset: int = 0
) -> Tuple[List[Contribution], int]:
    """
    Get contributions of a wallet, newest first, with the total count.

    Args:
        session: Database session
        wallet_id: LeagueWallet UUID
        limit: Maximum number of contributions to return
        offset: Number of contributions to skip

    Returns:
        Tuple of (contributions, total)
    """
    result = await session.execute(
        select(Contribution)
        .where(Contribution.wallet_id == wallet_id)
        .order_by(desc(Contribution.created_at))
        .limit(limit)
        .offset(offset)
    )
    total = await session.scalar(
        select(func.count(Contribution.id)).where(Contribution.wallet_id == wallet_id)
    )
    return result.scalars().all(), total or 0


async def get_wallets_due(session: AsyncSession, now: datetime) -> List[LeagueWallet]:
    """
    Get wallets whose monthly charge is due and that are not frozen.

    Args:
        session: Database session
        now: Current time

    Returns:
        List of LeagueWallet instances with next_payment_date <= now
    """
    result = await session.execute(
        select(LeagueWallet)
        .where(
            LeagueWallet.next_payment_date.is_not(None),
            LeagueWallet.next_payment_date <= now,
            LeagueWallet.is_frozen.is_(False)
        )
        .order_by(LeagueWallet.next_payment_date.asc())
    )
    return result.scalars().all()


async def count_frozen_wallets(session: AsyncSession) -> int:
    count = await session.scalar(
        select(func.count(LeagueWallet.id)).where(LeagueWallet.is_frozen.is_(True))
    )
    return count or 0
