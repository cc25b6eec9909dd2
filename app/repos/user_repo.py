"""
User repository with async CRUD operations
"""

from typing import Optional, List, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func, or_
from app.models.user import User
from app.models.enums import UserRole


async def create_user(
    session: AsyncSession,
    email: str,
    username: str,
    password_hash: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    role: str = UserRole.USER.value
) -> User:
    """
    Create a new user.

    Args:
        session: Database session
        email: Email address (must be unique)
        username: Username (must be unique)
        password_hash: bcrypt hash of the password
        first_name: Optional first name
        last_name: Optional last name
        role: User role (default: user)

    Returns:
        Created User instance
    """
    user = User(
        email=email.lower(),
        username=username,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def get_user_by_id(session: AsyncSession, user_id: UUID) -> Optional[User]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User UUID

    Returns:
        User instance or None if not found
    """
    result = await session.execute(
        select(User).where(User.id == user_id)
    )
    return result.scalar_one_or_none()


async def get_user_by_username(session: AsyncSession, username: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.username == username)
    )
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.email == email.lower())
    )
    return result.scalar_one_or_none()


async def get_user_by_login(session: AsyncSession, login: str) -> Optional[User]:
    """
    Get user by email or username, whichever matches.

    Args:
        session: Database session
        login: Email address or username

    Returns:
        User instance or None if not found
    """
    result = await session.execute(
        select(User).where(or_(User.email == login.lower(), User.username == login))
    )
    return result.scalars().first()


async def update_user(
    session: AsyncSession,
    user_id: UUID,
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    avatar: Optional[str] = None,
    email: Optional[str] = None,
    username: Optional[str] = None,
    password_hash: Optional[str] = None
) -> Optional[User]:
    """
    Update user information. None leaves a field unchanged.

    Args:
        session: Database session
        user_id: User UUID
        role: New role (optional)
        is_active: New active flag (optional)
        first_name: New first name (optional)
        last_name: New last name (optional)
        avatar: New avatar URL (optional)
        email: New email address (optional)
        username: New username (optional)
        password_hash: New bcrypt hash (optional)

    Returns:
        Updated User instance or None if not found
    """
    user = await get_user_by_id(session, user_id)
    if not user:
        return None

    if role is not None:
        user.role = role
    if is_active is not None:
        user.is_active = is_active
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    if avatar is not None:
        user.avatar = avatar
    if email is not None:
        user.email = email.lower()
    if username is not None:
        user.username = username
    if password_hash is not None:
        user.password_hash = password_hash

    await session.commit()
    await session.refresh(user)
    return user


async def delete_user(session: AsyncSession, user: User) -> None:
    await session.delete(user)
    await session.commit()


def _user_filters(search: Optional[str], role: Optional[str], is_active: Optional[bool]):
    filters = []
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(or_(
            func.lower(User.username).like(pattern),
            func.lower(User.email).like(pattern),
            func.lower(User.first_name).like(pattern),
            func.lower(User.last_name).like(pattern),
        ))
    if role:
        filters.append(User.role == role)
    if is_active is not None:
        filters.append(User.is_active == is_active)
    return filters


async def get_users(
    session: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    search: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[bool] = None
) -> Tuple[List[User], int]:
    """
    Get a page of users with the total count for the same filters.

    Args:
        session: Database session
        limit: Maximum number of users to return
        offset: Number of users to skip
        search: Case-insensitive match on username, email or names
        role: Filter by role
        is_active: Filter by active flag

    Returns:
        Tuple of (users, total)
    """
    filters = _user_filters(search, role, is_active)

    query = select(User).where(*filters).order_by(desc(User.created_at)).limit(limit).offset(offset)
    result = await session.execute(query)
    users = result.scalars().all()

    total = await session.scalar(select(func.count(User.id)).where(*filters))
    return users, total or 0


async def find_identity_conflict(
    session: AsyncSession,
    user_id: UUID,
    email: Optional[str] = None,
    username: Optional[str] = None
) -> Optional[User]:
    """Another user already holding the given email or username, if any."""
    clauses = []
    if email:
        clauses.append(User.email == email.lower())
    if username:
        clauses.append(User.username == username)
    if not clauses:
        return None

    result = await session.execute(
        select(User).where(User.id != user_id, or_(*clauses))
    )
    return result.scalars().first()
