from typing import List, Optional

from community_watch.schemas.base import CamelModel


class MonthCount(CamelModel):
    month: str
    count: int


class RecentActivity(CamelModel):
    title: str
    date: Optional[str] = None
    id: int


class PublicStats(CamelModel):
    total: int
    by_month: List[MonthCount]
    trend: int
    recent: List[RecentActivity]
