"""
Rate Limiting for Community Watch
=================================
Implements per-client-IP rate limiting using slowapi.

Limits (configurable in settings):
- POST /api/report: 100 per 15 minutes (anonymous public intake)
- POST /api/login: 10 per 15 minutes (brute force protection)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from community_watch.core.config import settings
from community_watch.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """Rate limit key: the client IP (proxy headers are resolved by uvicorn)"""
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    limit = getattr(exc, "limit", None)
    if limit is not None:
        try:
            return int(limit.limit.get_expiry())
        except AttributeError:
            pass
    return 900


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 with a Retry-After header"""
    retry_after = _retry_after_seconds(exc)

    logger.warning(f"[RateLimit] Exceeded on {request.method} {request.url.path}: {exc.detail}")

    if request.url.path.endswith("/login"):
        message = "Too many login attempts."
    else:
        message = "Too many reports submitted, please try again later."

    return JSONResponse(
        status_code=429,
        content={
            "error": message,
            "code": "RATE_LIMITED",
            "retryAfterSeconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


def report_rate_limit():
    """Rate limit for public report submission"""
    return limiter.limit(settings.REPORT_RATE_LIMIT)


def login_rate_limit():
    """Rate limit for login attempts"""
    return limiter.limit(settings.LOGIN_RATE_LIMIT)
