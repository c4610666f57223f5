from datetime import datetime
from typing import List, Optional

from community_watch.schemas.base import CamelModel


class ForwardEntryResponse(CamelModel):
    to: str
    sent_at: datetime
    sent_by: str


class ReportResponse(CamelModel):
    id: int
    reference_number: str
    type: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    date: Optional[str] = None
    time: Optional[str] = None
    description: str = ""
    evidence: List[str] = []
    forward_history: List[ForwardEntryResponse] = []
    created_at: datetime


class ReportSubmittedResponse(CamelModel):
    message: str
    reference_number: str


class ForwardRequest(CamelModel):
    group_ids: List[int] = []


class ForwardResult(CamelModel):
    group_id: int
    group: str
    delivered: bool
    error: Optional[str] = None


class ForwardResponse(CamelModel):
    message: str
    history: List[ForwardEntryResponse]
    results: List[ForwardResult]
