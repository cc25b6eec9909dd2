"""
User profile API endpoints
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status, Depends, Query
from pydantic import BaseModel, Field, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user, verify_password, get_password_hash
from app.db.session import get_db
from app.models.user import User
from app.repos import user_repo

logger = logging.getLogger(__name__)

router = APIRouter()


class UserListResponse(BaseModel):
    """User directory page"""
    users: List[dict]
    total: int
    page: int
    limit: int
    total_pages: int


class ProfileUpdateRequest(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=32)
    first_name: Optional[str] = Field(None, max_length=64)
    last_name: Optional[str] = Field(None, max_length=64)
    avatar: Optional[str] = Field(None, max_length=512)


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


def _require_self(user_id: UUID, current_user: User) -> None:
    if user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only modify your own account"
        )


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match on username, email or names"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    Active users, newest first.
    """
    users, total = await user_repo.get_users(
        session, limit=limit, offset=(page - 1) * limit, search=search, is_active=True
    )
    return UserListResponse(
        users=[user.to_dict() for user in users],
        total=total,
        page=page,
        limit=limit,
        total_pages=(total + limit - 1) // limit,
    )


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    user = await user_repo.get_user_by_id(session, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"user": user.to_dict()}


@router.patch("/{user_id}")
async def update_profile(
    user_id: UUID,
    update_data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    Update your own profile. Email and username stay unique.
    """
    _require_self(user_id, current_user)

    changes = update_data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    conflict = await user_repo.find_identity_conflict(
        session, user_id, email=changes.get("email"), username=changes.get("username")
    )
    if conflict:
        email = changes.get("email")
        field = "Email" if email and conflict.email == email.lower() else "Username"
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{field} is already used by another account"
        )

    user = await user_repo.update_user(session, user_id, **changes)
    return {"user": user.to_dict()}


@router.post("/{user_id}/password")
async def change_password(
    user_id: UUID,
    password_data: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    _require_self(user_id, current_user)

    if not verify_password(password_data.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect"
        )

    await user_repo.update_user(
        session, user_id, password_hash=get_password_hash(password_data.new_password)
    )
    logger.info(f"User {user_id} changed their password")
    return {"message": "Password updated successfully"}


@router.delete("/{user_id}")
async def deactivate_account(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    Soft delete: the account is deactivated and can no longer log in.
    """
    _require_self(user_id, current_user)

    await user_repo.update_user(session, user_id, is_active=False)
    logger.info(f"User {user_id} deactivated their account")
    return {"message": "Account deactivated successfully"}
