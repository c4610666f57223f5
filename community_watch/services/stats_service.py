"""
Public statistics for the landing page.

Everything here is derived from report ``date`` strings and insertion order.
Nothing identifying (description, coordinates, evidence, reference number)
leaves this module.
"""

import calendar
import math
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.models.report import Report
from community_watch.schemas.stats import MonthCount, PublicStats, RecentActivity

RECENT_LIMIT = 5


def parse_report_date(value: Optional[str]) -> Optional[date]:
    """ISO calendar date (YYYY-MM-DD), or None when it does not parse"""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def previous_month(year: int, month: int):
    if month == 1:
        return year - 1, 12
    return year, month - 1


def compute_trend(current: int, previous: int) -> int:
    """Month-over-month change in percent, rounded half up"""
    if previous > 0:
        return math.floor(100 * (current - previous) / previous + 0.5)
    if current > 0:
        return 100
    return 0


def activity_title(report_type: str, location: str) -> str:
    """'Theft near High Street' from type 'theft' and location 'High Street, London'"""
    report_type = report_type or ""
    heading = report_type[:1].upper() + report_type[1:]
    return f"{heading} near {(location or '').split(',')[0]}"


def summarize_dates(dates: Iterable[Optional[str]], now: datetime):
    """
    Bucket report dates for ``now``'s year.

    Returns (total, twelve monthly counts, trend).
    """
    months = [0] * 12
    current_count = 0
    previous_count = 0
    prev_year, prev_month = previous_month(now.year, now.month)

    for raw in dates:
        parsed = parse_report_date(raw)
        if parsed is None:
            continue
        if parsed.year == now.year:
            months[parsed.month - 1] += 1
            if parsed.month == now.month:
                current_count += 1
        if parsed.year == prev_year and parsed.month == prev_month:
            previous_count += 1

    return sum(months), months, compute_trend(current_count, previous_count)


async def compute_public_stats(db: AsyncSession, now: Optional[datetime] = None) -> PublicStats:
    now = now or datetime.utcnow()

    result = await db.execute(select(Report.date))
    total, months, trend = summarize_dates(result.scalars().all(), now)

    recent_result = await db.execute(
        select(Report.id, Report.type, Report.location, Report.date)
        .order_by(Report.id.desc())
        .limit(RECENT_LIMIT)
    )
    recent: List[RecentActivity] = [
        RecentActivity(id=row.id, title=activity_title(row.type, row.location), date=row.date)
        for row in recent_result.all()
    ]

    return PublicStats(
        total=total,
        by_month=[
            MonthCount(month=calendar.month_abbr[index + 1], count=count)
            for index, count in enumerate(months)
        ],
        trend=trend,
        recent=recent,
    )


async def count_reports(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Report.id)))
    return result.scalar() or 0
