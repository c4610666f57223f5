"""
Administrator credentials: login verification and account creation.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.exceptions import InvalidCredentialsError, UsernameTakenError
from community_watch.core.logging_config import logger
from community_watch.core.security import verify_password, get_password_hash, burn_password_check
from community_watch.models.user import User, UserRole


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def count_users(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(User.id)))
    return result.scalar() or 0


async def authenticate(
    db: AsyncSession,
    username: str,
    password: str,
    client_ip: Optional[str] = None,
) -> User:
    """
    Return the administrator for a username/password pair.

    Unknown user and wrong password raise the same InvalidCredentialsError,
    and both cost one bcrypt verification.
    """
    user = await get_user_by_username(db, username)

    if user is None:
        burn_password_check(password)
        logger.log_auth_event(
            event="login",
            success=False,
            username=username,
            reason="Unknown user",
            client_ip=client_ip,
        )
        raise InvalidCredentialsError()

    if not verify_password(password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            username=username,
            reason="Wrong password",
            client_ip=client_ip,
        )
        raise InvalidCredentialsError()

    logger.log_auth_event(event="login", success=True, username=user.username, client_ip=client_ip)
    return user


async def create_administrator(
    db: AsyncSession,
    username: str,
    password: str,
    role: UserRole = UserRole.ADMIN,
    created_by: Optional[str] = None,
) -> User:
    """Store a new administrator; only the bcrypt hash of the password is kept"""
    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        role=UserRole(role).value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"[Auth] Username '{username}' already exists")
        raise UsernameTakenError(username)

    await db.refresh(user)
    logger.info(f"[Auth] Created {user.role} '{user.username}'" + (f" (by {created_by})" if created_by else ""))
    return user
