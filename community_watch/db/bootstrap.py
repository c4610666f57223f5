"""
First-run bootstrap

Creates the default superadmin when no administrator exists and seeds the
default email groups when the registry is empty. Both steps are idempotent
and run on every startup.

Run manually with: python -m community_watch.db.bootstrap
"""
import asyncio
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.config import settings
from community_watch.core.database import init_db, session_scope
from community_watch.core.logging_config import logger
from community_watch.core.security import get_password_hash
from community_watch.models.email_group import EmailGroup
from community_watch.models.user import User, UserRole
from community_watch.services.auth_service import count_users


async def ensure_default_admin(db: AsyncSession) -> bool:
    """Create the default superadmin if the users table is empty. Returns True if created."""
    if await count_users(db) > 0:
        return False

    db.add(User(
        username=settings.DEFAULT_ADMIN_USERNAME,
        hashed_password=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
        role=UserRole.SUPERADMIN.value,
    ))
    await db.commit()

    logger.warning(
        f"[Bootstrap] Created default superadmin '{settings.DEFAULT_ADMIN_USERNAME}'. "
        "Change this password immediately."
    )
    return True


async def ensure_default_email_groups(db: AsyncSession) -> List[str]:
    """
    Insert the configured default groups if no group exists yet. Returns the names added.

    A registry that already holds any group, seeded or not, is left as it is.
    """
    existing = await db.scalar(select(func.count(EmailGroup.id)))
    if existing:
        return []

    added = []
    for group in settings.DEFAULT_EMAIL_GROUP_LIST:
        if group["name"] in added:
            continue
        db.add(EmailGroup(name=group["name"], emails=group["emails"]))
        added.append(group["name"])

    if added:
        await db.commit()
        logger.info(f"[Bootstrap] Seeded email groups: {', '.join(added)}")
    return added


async def bootstrap(db: AsyncSession) -> None:
    await ensure_default_admin(db)
    await ensure_default_email_groups(db)


async def run_bootstrap():
    await init_db()
    async with session_scope() as db:
        await bootstrap(db)


if __name__ == "__main__":
    asyncio.run(run_bootstrap())
