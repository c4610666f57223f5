from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.database import get_db
from community_watch.schemas.stats import PublicStats
from community_watch.services.stats_service import compute_public_stats

router = APIRouter()


@router.get("/stats", response_model=PublicStats)
async def public_stats(db: AsyncSession = Depends(get_db)):
    """Aggregate counts for the public landing page (no authentication)"""
    return await compute_public_stats(db)
