from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.database import get_db
from community_watch.core.exceptions import StorageError
from community_watch.core.logging_config import logger
from community_watch.core.rate_limiter import report_rate_limit
from community_watch.core.security import Claims
from community_watch.modules.auth.dependencies import get_current_admin
from community_watch.schemas.report import (
    ForwardEntryResponse,
    ForwardRequest,
    ForwardResponse,
    ForwardResult,
    ReportResponse,
    ReportSubmittedResponse,
)
from community_watch.services import report_service
from community_watch.services.email_service import MailSender, get_mail_sender
from community_watch.services.forwarding_service import forward_report as dispatch_forward
from community_watch.services.storage_service import LocalBlobStore, get_blob_store

router = APIRouter()


@router.post("/report", response_model=ReportSubmittedResponse, status_code=status.HTTP_201_CREATED)
@report_rate_limit()
async def submit_report(
    request: Request,
    type: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    time: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    evidence: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """
    Anonymous report intake (multipart, rate limited per IP).

    Fields are checked before anything is written; evidence files are then
    stored in upload order, and only after that is the report row created.
    """
    fields = {
        "type": type,
        "location": location,
        "date": date,
        "time": time,
        "description": description,
        "latitude": latitude,
        "longitude": longitude,
    }
    report_service.validate_submission(fields)

    uploads = [upload for upload in (evidence or []) if upload.filename]
    try:
        stored = await blob_store.save_uploads(uploads)
    except OSError as e:
        logger.log_error_with_context(e, context="evidence upload")
        raise StorageError()

    report = await report_service.create_report(db, fields, stored)

    return ReportSubmittedResponse(
        message="Report submitted successfully",
        reference_number=report.reference_number,
    )


@router.get("/reports", response_model=List[ReportResponse])
async def list_reports(
    q: Optional[str] = Query(None, description="Substring of description, location or reference number"),
    type: Optional[str] = Query(None, description="Exact report type"),
    claims: Claims = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.search_reports(db, query=q, report_type=type)


@router.get("/report/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: int,
    claims: Claims = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.get_report(db, report_id)


@router.post("/report/{report_id}/forward", response_model=ForwardResponse)
async def forward_report(
    report_id: int,
    forward: ForwardRequest,
    claims: Claims = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    mail_sender: MailSender = Depends(get_mail_sender),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """
    Email a report to the selected groups.

    Each group is attempted independently; ``results`` says which ones were
    delivered and ``history`` holds every delivery recorded so far.
    """
    outcome = await dispatch_forward(db, report_id, forward.group_ids, claims, mail_sender, blob_store)

    return ForwardResponse(
        message=outcome.message,
        history=[ForwardEntryResponse.model_validate(entry) for entry in outcome.history],
        results=[
            ForwardResult(
                group_id=result.group_id,
                group=result.group,
                delivered=result.delivered,
                error=result.error,
            )
            for result in outcome.results
        ],
    )
