"""
Custom Exceptions for Community Watch
=====================================

Services raise these instead of HTTPException so the same rules apply
whether an operation is called from a route, a script, or a test. Each
error carries the HTTP status it maps to; the handler registered in
``community_watch.main`` renders ``{"error": message, "code": code}``.

Usage:
    from community_watch.core.exceptions import ReportNotFoundError

    if not report:
        raise ReportNotFoundError(report_id)
"""

from typing import Optional, Any, Dict


class CommunityWatchError(Exception):
    """Base exception for all Community Watch errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(CommunityWatchError):
    """Request is not authenticated"""

    status_code = 401

    def __init__(self, message: str = "Authentication required", code: str = "UNAUTHENTICATED"):
        super().__init__(message, code=code)


class InvalidCredentialsError(AuthenticationError):
    """Username/password pair rejected (same error for unknown user and wrong password)"""

    def __init__(self):
        super().__init__("Invalid credentials", code="INVALID_CREDENTIALS")


class InvalidTokenError(AuthenticationError):
    """Session token missing, malformed, expired or wrongly signed"""

    def __init__(self):
        super().__init__("Authentication required", code="UNAUTHENTICATED")


class ForbiddenError(CommunityWatchError):
    """Authenticated, but the role is not sufficient"""

    status_code = 403

    def __init__(self, message: str = "Requires Super Admin privileges"):
        super().__init__(message, code="FORBIDDEN")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(CommunityWatchError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class ReportNotFoundError(ResourceNotFoundError):
    """Report not found"""

    def __init__(self, report_id: Any):
        super().__init__("Report", report_id)


class EmailGroupNotFoundError(ResourceNotFoundError):
    """Email group not found"""

    def __init__(self, group_id: Any):
        super().__init__("Group", group_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(CommunityWatchError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class NoGroupsSelectedError(ValidationError):
    """Forward request resolved to no email group"""

    def __init__(self):
        super().__init__("No groups selected", field="groupIds")
        self.code = "NO_GROUPS_SELECTED"


class UsernameTakenError(ValidationError):
    """Administrator username already exists"""

    def __init__(self, username: str):
        super().__init__("Failed to create user (username might be taken)", field="username")
        self.code = "USERNAME_TAKEN"
        self.details["username"] = username


# ============================================
# Delivery & Storage Errors
# ============================================

class MailDeliveryError(CommunityWatchError):
    """Sending a forward to one email group failed (never surfaced as a request error)"""

    status_code = 502

    def __init__(self, group_name: str, reason: str):
        super().__init__(f"Failed to deliver to {group_name}: {reason}", code="MAIL_DELIVERY_FAILED")
        self.details = {"group": group_name, "reason": reason}


class StorageError(CommunityWatchError):
    """Database or blob storage unavailable"""

    status_code = 500

    def __init__(self, message: str = "Storage unavailable"):
        super().__init__(message, code="STORAGE_ERROR")
