"""
League lifecycle: creation, joining, invite codes, ownership and soft delete
"""

import logging
import secrets
import string
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.enums import MemberRole, RuleViolation
from app.models.league import League, LeagueMember
from app.models.wallet import LeagueWallet
from app.repos import league_repo
from app.repos.audit_log_repo import add_audit_log
from app.services.plans import get_plan
from app.services.results import RuleResult

logger = logging.getLogger(__name__)

INVITE_CODE_LENGTH = 8
INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_INVITE_CODE_ATTEMPTS = 10


class LeagueResult(RuleResult):
    league_id: Optional[UUID] = None
    invite_code: Optional[str] = None


async def generate_invite_code(session: AsyncSession) -> str:
    """Random unused invite code."""
    for _ in range(MAX_INVITE_CODE_ATTEMPTS):
        code = "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))
        if not await league_repo.invite_code_exists(session, code):
            return code
    raise RuntimeError("Could not generate a unique invite code")


async def create_league(
    session: AsyncSession,
    owner_id: UUID,
    name: str,
    now: datetime,
    description: Optional[str] = None,
    is_private: bool = True,
    competition_id: Optional[UUID] = None
) -> League:
    """
    Create a league on the free plan.

    The league row, the owner's membership and the empty wallet are written
    in one transaction.

    Args:
        session: Database session
        owner_id: Creating user UUID
        name: League name
        now: Current time
        description: Optional description
        is_private: Private leagues are joined by invite code only
        competition_id: Initial competition (optional)

    Returns:
        Created League instance
    """
    free_plan = await get_plan(session, settings.free_plan_id)
    invite_code = await generate_invite_code(session)

    league = League(
        name=name,
        description=description,
        owner_id=owner_id,
        plan_id=free_plan.id,
        invite_code=invite_code,
        is_private=is_private,
        is_active=True,
        current_competition_id=competition_id,
        created_at=now,
    )
    try:
        session.add(league)
        await session.flush()

        session.add(LeagueMember(
            league_id=league.id,
            user_id=owner_id,
            role=MemberRole.OWNER.value,
            points=settings.starting_points,
            joined_at=now,
        ))
        session.add(LeagueWallet(
            league_id=league.id,
            balance=Decimal("0"),
            next_payment_date=None,
            is_frozen=False,
        ))
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league.id} created by {owner_id} with invite code {invite_code}")
    return league


async def join_league(session: AsyncSession, user_id: UUID, invite_code: str, now: datetime) -> LeagueResult:
    """
    Join a league by invite code, within the plan's member cap.

    Args:
        session: Database session
        user_id: Joining user UUID
        invite_code: League invite code (case-insensitive)
        now: Current time

    Returns:
        LeagueResult
    """
    league = await league_repo.get_league_by_invite_code(session, invite_code.strip())
    if league is None:
        raise NotFoundError("League with invite code", invite_code)

    if await league_repo.get_member(session, league.id, user_id) is not None:
        return LeagueResult.reject(RuleViolation.ALREADY_MEMBER, "You are already a member of this league", league_id=league.id)

    try:
        locked = await league_repo.get_league_for_update(session, league.id)
        plan = await get_plan(session, locked.plan_id)
        members = await league_repo.count_members(session, league.id)
        if members >= plan.max_members:
            await session.rollback()
            return LeagueResult.reject(
                RuleViolation.LEAGUE_FULL,
                f"League is full ({plan.max_members} members on the {plan.name} plan)",
                league_id=league.id,
            )

        session.add(LeagueMember(
            league_id=league.id,
            user_id=user_id,
            role=MemberRole.MEMBER.value,
            points=settings.starting_points,
            joined_at=now,
        ))
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"User {user_id} joined league {league.id}")
    return LeagueResult.ok(league_id=league.id)


async def _require_role(session: AsyncSession, league_id: UUID, user_id: UUID, roles) -> Optional[LeagueResult]:
    member = await league_repo.get_member(session, league_id, user_id)
    if member is None:
        return LeagueResult.reject(RuleViolation.NOT_A_MEMBER, "You are not a member of this league")
    if member.role not in roles:
        return LeagueResult.reject(RuleViolation.NOT_AUTHORIZED, "You are not allowed to manage this league")
    return None


async def regenerate_invite_code(session: AsyncSession, league_id: UUID, user_id: UUID) -> LeagueResult:
    """Replace a league's invite code (owner or admin)."""
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    rejection = await _require_role(session, league_id, user_id, (MemberRole.OWNER.value, MemberRole.ADMIN.value))
    if rejection:
        return rejection

    code = await generate_invite_code(session)
    try:
        league.invite_code = code
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league_id} invite code regenerated")
    return LeagueResult.ok(league_id=league_id, invite_code=code)


async def transfer_ownership(
    session: AsyncSession,
    league_id: UUID,
    user_id: UUID,
    new_owner_id: UUID,
    now: datetime
) -> LeagueResult:
    """
    Hand league ownership to another member.

    The previous owner stays in the league as an admin.

    Args:
        session: Database session
        league_id: League UUID
        user_id: Current owner UUID
        new_owner_id: Member receiving ownership
        now: Current time

    Returns:
        LeagueResult
    """
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    rejection = await _require_role(session, league_id, user_id, (MemberRole.OWNER.value,))
    if rejection:
        return rejection

    new_owner = await league_repo.get_member(session, league_id, new_owner_id)
    if new_owner is None:
        return LeagueResult.reject(RuleViolation.NOT_A_MEMBER, "New owner must be a member of the league")

    previous = await league_repo.get_member(session, league_id, user_id)
    try:
        league.owner_id = new_owner_id
        new_owner.role = MemberRole.OWNER.value
        previous.role = MemberRole.ADMIN.value
        add_audit_log(
            session,
            action="league_ownership_transferred",
            details={"league_id": str(league_id), "from": str(user_id), "to": str(new_owner_id)},
            user_id=user_id,
            created_at=now,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league_id} ownership transferred {user_id} -> {new_owner_id}")
    return LeagueResult.ok(league_id=league_id)


async def delete_league(session: AsyncSession, league_id: UUID, user_id: UUID, now: datetime) -> LeagueResult:
    """Soft delete a league (owner only); data is kept."""
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    rejection = await _require_role(session, league_id, user_id, (MemberRole.OWNER.value,))
    if rejection:
        return rejection

    try:
        league.is_active = False
        add_audit_log(
            session,
            action="league_deleted",
            details={"league_id": str(league_id)},
            user_id=user_id,
            created_at=now,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"League {league_id} soft-deleted by {user_id}")
    return LeagueResult.ok(league_id=league_id)


async def get_league_for_member(session: AsyncSession, league_id: UUID, user_id: UUID):
    """
    Get a league and the caller's membership.

    Returns:
        Tuple of (League, LeagueMember or None)
    """
    league = await league_repo.get_league_by_id(session, league_id)
    if league is None:
        raise NotFoundError("League", league_id)
    member = await league_repo.get_member(session, league_id, user_id)
    return league, member
