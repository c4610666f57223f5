"""
Forwarding service - send a report to email groups and record each delivery.

Flow per request:
    1. Validate: report exists, at least one known group selected.
       Nothing is sent or written if this fails.
    2. Dispatch each group in the order requested: build the evidence set,
       send under a timeout, and on success append one history entry in its
       own transaction.
    3. Return the full history and a per-group result.

A failed group (unreadable evidence, transport error, timeout) is logged and
reported in the results; it never stops the remaining groups and never
leaves a history entry behind.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.config import settings
from community_watch.core.exceptions import MailDeliveryError, NoGroupsSelectedError
from community_watch.core.logging_config import logger
from community_watch.core.security import Claims
from community_watch.models.email_group import EmailGroup
from community_watch.models.report import Report, ForwardEntry
from community_watch.services import report_service
from community_watch.services.email_group_service import resolve_groups
from community_watch.services.email_service import Attachment, MailSender
from community_watch.services.storage_service import LocalBlobStore


@dataclass
class EvidenceBundle:
    """What goes into the message for a report's evidence"""
    attachments: List[Attachment] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    total_size: int = 0

    @property
    def as_text(self) -> str:
        if self.links:
            return "Evidence files are too large to attach. Download them here:\n" + "\n".join(
                f"- {link}" for link in self.links
            )
        if self.attachments:
            return "See attached files."
        return "No evidence files were submitted."


@dataclass
class GroupResult:
    group_id: int
    group: str
    delivered: bool
    error: Optional[str] = None


@dataclass
class ForwardOutcome:
    report_id: int
    results: List[GroupResult]
    history: List[ForwardEntry]

    @property
    def all_delivered(self) -> bool:
        return all(result.delivered for result in self.results)

    @property
    def message(self) -> str:
        if self.all_delivered:
            return "Report forwarded successfully"
        delivered = sum(1 for result in self.results if result.delivered)
        return f"Report forwarded to {delivered} of {len(self.results)} groups"


async def build_evidence(
    report: Report,
    blob_store: LocalBlobStore,
    base_url: str,
    size_limit: int,
) -> EvidenceBundle:
    """
    Attach every file when their combined size fits under size_limit,
    otherwise link to each one instead.
    """
    filenames = list(report.evidence or [])
    sizes = [await blob_store.size(name) for name in filenames]
    bundle = EvidenceBundle(total_size=sum(sizes))

    if bundle.total_size > size_limit:
        bundle.links = [blob_store.public_url(base_url, name) for name in filenames]
    else:
        for name in filenames:
            bundle.attachments.append(Attachment(filename=name, content=await blob_store.read(name)))
    return bundle


def compose_report_email(report: Report, evidence: EvidenceBundle, dashboard_url: str):
    """Subject and plain-text body for a forwarded report"""
    subject = f"New Report: {report.reference_number} - {report.type}"
    body = (
        "New Community Watch Report Received.\n"
        "\n"
        f"Reference: {report.reference_number}\n"
        f"Type: {report.type}\n"
        f"Location: {report.location}\n"
        f"Date/Time: {report.date} at {report.time}\n"
        "\n"
        "Description:\n"
        f"{report.description}\n"
        "\n"
        "Evidence:\n"
        f"{evidence.as_text}\n"
        "\n"
        f"View full report on Dashboard: {dashboard_url}\n"
    )
    return subject, body


async def _deliver(
    report: Report,
    group: EmailGroup,
    blob_store: LocalBlobStore,
    mail_sender: MailSender,
) -> None:
    try:
        evidence = await build_evidence(report, blob_store, settings.BASE_URL, settings.ATTACHMENT_SIZE_LIMIT)
    except OSError as e:
        raise MailDeliveryError(group.name, f"evidence unavailable ({type(e).__name__})") from e

    subject, body = compose_report_email(report, evidence, settings.DASHBOARD_URL)

    try:
        await asyncio.wait_for(
            mail_sender.send(group.recipients, subject, body, evidence.attachments),
            timeout=settings.MAIL_SEND_TIMEOUT,
        )
    except asyncio.TimeoutError as e:
        raise MailDeliveryError(group.name, f"timed out after {settings.MAIL_SEND_TIMEOUT:g}s") from e
    except Exception as e:
        raise MailDeliveryError(group.name, f"{type(e).__name__}: {e}") from e


async def forward_report(
    db: AsyncSession,
    report_id: int,
    group_ids: Sequence[int],
    claims: Claims,
    mail_sender: MailSender,
    blob_store: LocalBlobStore,
) -> ForwardOutcome:
    # Validating
    report = await report_service.get_report(db, report_id)
    groups = await resolve_groups(db, group_ids or [])
    if not groups:
        raise NoGroupsSelectedError()

    # Dispatching
    results: List[GroupResult] = []
    for group in groups:
        try:
            await _deliver(report, group, blob_store, mail_sender)
        except MailDeliveryError as e:
            logger.log_forward_event(report.id, group.name, False, claims.username, reason=e.details["reason"])
            if e.__cause__ is not None:
                logger.debug("[Forward] delivery failure detail", exc_info=e.__cause__)
            results.append(GroupResult(group.id, group.name, False, e.message))
            continue

        await report_service.append_forward_entry(
            db,
            report.id,
            group_name=group.name,
            sent_by=claims.username,
            sent_at=datetime.utcnow(),
        )
        logger.log_forward_event(report.id, group.name, True, claims.username)
        results.append(GroupResult(group.id, group.name, True))

    history = await report_service.get_forward_history(db, report.id)
    return ForwardOutcome(report_id=report.id, results=results, history=history)
