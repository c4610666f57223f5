from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.database import get_db
from community_watch.core.security import Claims
from community_watch.modules.auth.dependencies import get_current_admin, get_current_superadmin
from community_watch.schemas.email_group import EmailGroupResponse, EmailGroupUpdate
from community_watch.services import email_group_service

router = APIRouter()


@router.get("", response_model=List[EmailGroupResponse])
async def list_email_groups(
    claims: Claims = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await email_group_service.list_groups(db)


@router.put("/{group_id}", response_model=EmailGroupResponse)
async def update_email_group(
    group_id: int,
    update: EmailGroupUpdate,
    claims: Claims = Depends(get_current_superadmin),
    db: AsyncSession = Depends(get_db)
):
    """Replace a group's recipient list (superadmin only)"""
    return await email_group_service.update_group_emails(db, group_id, update.emails, updated_by=claims.username)
