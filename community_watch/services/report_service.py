"""
Report service - intake, lookup, search and forward-history append.

DESIGN NOTE:
- Public intake is deliberately low-friction: only presence of the required
  fields is checked, coordinates that do not parse are dropped.
- Reference numbers are 4 random digits and are NOT checked for collisions.
  ``reference_collision_probability`` gives the birthday-bound estimate.
- Forward history lives in its own insert-only table, so appending never
  rewrites earlier entries, even when two forwards run at once.
"""

import math
import random
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.config import settings
from community_watch.core.database import is_storable_id
from community_watch.core.exceptions import ReportNotFoundError, ValidationError
from community_watch.core.logging_config import logger
from community_watch.models.report import Report, ForwardEntry

REFERENCE_PREFIX = "CW-"
REFERENCE_MIN = 1000
REFERENCE_MAX = 9999
REFERENCE_SPACE = REFERENCE_MAX - REFERENCE_MIN + 1

REQUIRED_FIELDS = ("type", "location", "date", "time")


def generate_reference_number(rng: Optional[random.Random] = None) -> str:
    """CW- followed by 4 random decimal digits (1000-9999)"""
    rng = rng or random
    return f"{REFERENCE_PREFIX}{rng.randint(REFERENCE_MIN, REFERENCE_MAX)}"


def reference_collision_probability(report_count: int) -> float:
    """Approximate chance that report_count reports share at least one reference number"""
    if report_count < 2:
        return 0.0
    return 1 - math.exp(-report_count * (report_count - 1) / (2 * REFERENCE_SPACE))


def parse_coordinate(value) -> Optional[float]:
    """Float coordinate, or None when absent or malformed"""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def validate_submission(fields: Dict[str, Optional[str]]) -> None:
    """Raise ValidationError if a required field is missing or blank"""
    missing = [name for name in REQUIRED_FIELDS if not (fields.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

    allowed_types = settings.ALLOWED_REPORT_TYPES
    if allowed_types and fields["type"] not in allowed_types:
        raise ValidationError(f"Unknown report type: {fields['type']}", field="type")


async def create_report(
    db: AsyncSession,
    fields: Dict[str, Optional[str]],
    evidence: Iterable[str],
    reference_number: Optional[str] = None,
) -> Report:
    """
    Persist a validated submission.

    ``evidence`` holds blob-store filenames that are already on disk, in
    upload order.
    """
    report = Report(
        reference_number=reference_number or generate_reference_number(),
        type=fields["type"],
        location=fields["location"],
        latitude=parse_coordinate(fields.get("latitude")),
        longitude=parse_coordinate(fields.get("longitude")),
        date=fields.get("date"),
        time=fields.get("time"),
        description=fields.get("description") or "",
        evidence=list(evidence),
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)

    logger.info(
        f"[Reports] Created report {report.id} ({report.reference_number}) "
        f"with {len(report.evidence)} evidence file(s)"
    )
    return report


async def get_report(db: AsyncSession, report_id: int) -> Report:
    if not is_storable_id(report_id):
        raise ReportNotFoundError(report_id)

    result = await db.execute(
        select(Report)
        .where(Report.id == report_id)
        .execution_options(populate_existing=True)
    )
    report = result.scalar_one_or_none()
    if report is None:
        raise ReportNotFoundError(report_id)
    return report


async def search_reports(
    db: AsyncSession,
    query: Optional[str] = None,
    report_type: Optional[str] = None,
) -> List[Report]:
    """
    Newest first. ``query`` is a case-insensitive substring match on
    description, location or reference number; ``report_type`` is exact.
    """
    stmt = select(Report)

    if query:
        stmt = stmt.where(or_(
            Report.description.icontains(query, autoescape=True),
            Report.location.icontains(query, autoescape=True),
            Report.reference_number.icontains(query, autoescape=True),
        ))

    if report_type:
        stmt = stmt.where(Report.type == report_type)

    stmt = stmt.order_by(Report.created_at.desc(), Report.id.desc())

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def append_forward_entry(
    db: AsyncSession,
    report_id: int,
    group_name: str,
    sent_by: str,
    sent_at: Optional[datetime] = None,
) -> ForwardEntry:
    """Insert and commit one forward-history entry"""
    entry = ForwardEntry(
        report_id=report_id,
        to=group_name,
        sent_by=sent_by,
        sent_at=sent_at or datetime.utcnow(),
    )
    db.add(entry)
    await db.commit()
    return entry


async def get_forward_history(db: AsyncSession, report_id: int) -> List[ForwardEntry]:
    result = await db.execute(
        select(ForwardEntry)
        .where(ForwardEntry.report_id == report_id)
        .order_by(ForwardEntry.id)
    )
    return list(result.scalars().all())
