"""
Shared route helpers
"""

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import MemberRole, RuleViolation
from app.services.leagues import get_league_for_member

MANAGER_ROLES = (MemberRole.OWNER.value, MemberRole.ADMIN.value)


async def require_member(session: AsyncSession, league_id: UUID, user_id: UUID, manager: bool = False):
    """
    Load an active league and the caller's membership.

    A missing league raises NotFoundError (404). Non-members get 403, and so
    do plain members when ``manager`` is set.

    Returns:
        Tuple of (League, LeagueMember)
    """
    league, member = await get_league_for_member(session, league_id, user_id)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"reason": RuleViolation.NOT_A_MEMBER.value, "message": "You are not a member of this league"}
        )
    if manager and member.role not in MANAGER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"reason": RuleViolation.NOT_AUTHORIZED.value, "message": "Only league owners and admins can do this"}
        )
    return league, member
