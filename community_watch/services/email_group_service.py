"""
Email group registry.
"""

from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.database import is_storable_id
from community_watch.core.exceptions import EmailGroupNotFoundError
from community_watch.core.logging_config import logger
from community_watch.models.email_group import EmailGroup


async def list_groups(db: AsyncSession) -> List[EmailGroup]:
    result = await db.execute(select(EmailGroup).order_by(EmailGroup.id))
    return list(result.scalars().all())


async def update_group_emails(db: AsyncSession, group_id: int, emails: str, updated_by: str) -> EmailGroup:
    """Replace a group's address list wholesale (free text, not validated)"""
    group = await db.get(EmailGroup, group_id) if is_storable_id(group_id) else None
    if group is None:
        raise EmailGroupNotFoundError(group_id)

    group.emails = emails
    await db.commit()
    await db.refresh(group)

    logger.info(f"[EmailGroups] '{group.name}' recipients updated by {updated_by}")
    return group


async def resolve_groups(db: AsyncSession, group_ids: Iterable[int]) -> List[EmailGroup]:
    """
    Known groups for the given ids, in the order the ids were given.
    Unknown ids are skipped and repeated ids collapse to one.
    """
    ordered_ids = [group_id for group_id in dict.fromkeys(group_ids) if is_storable_id(group_id)]
    if not ordered_ids:
        return []

    result = await db.execute(select(EmailGroup).where(EmailGroup.id.in_(ordered_ids)))
    by_id = {group.id: group for group in result.scalars().all()}
    return [by_id[group_id] for group_id in ordered_ids if group_id in by_id]
