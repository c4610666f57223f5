# Re-export all models for convenient imports
from community_watch.models.user import User, UserRole
from community_watch.models.report import Report, ForwardEntry
from community_watch.models.email_group import EmailGroup

__all__ = [
    "User",
    "UserRole",
    "Report",
    "ForwardEntry",
    "EmailGroup",
]
