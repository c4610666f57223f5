from community_watch.schemas.auth import UserLogin, LoginResponse, UserCreate, UserCreatedResponse
from community_watch.schemas.report import (
    ForwardEntryResponse,
    ReportResponse,
    ReportSubmittedResponse,
    ForwardRequest,
    ForwardResult,
    ForwardResponse,
)
from community_watch.schemas.email_group import EmailGroupResponse, EmailGroupUpdate
from community_watch.schemas.stats import MonthCount, RecentActivity, PublicStats

__all__ = [
    "UserLogin",
    "LoginResponse",
    "UserCreate",
    "UserCreatedResponse",
    "ForwardEntryResponse",
    "ReportResponse",
    "ReportSubmittedResponse",
    "ForwardRequest",
    "ForwardResult",
    "ForwardResponse",
    "EmailGroupResponse",
    "EmailGroupUpdate",
    "MonthCount",
    "RecentActivity",
    "PublicStats",
]
