"""
Community Watch - HTTP Middleware
Request logging, security headers and body size limits
"""

import time
from typing import Callable, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from community_watch.core.config import settings
from community_watch.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)

# Not worth a log line: probes, docs and static evidence downloads
QUIET_PATHS: FrozenSet[str] = frozenset({"/health", "/favicon.ico", "/docs", "/redoc", "/openapi.json"})
QUIET_PREFIXES = ("/uploads/",)

SLOW_REQUEST_MS = 1000


def should_skip_logging(path: str) -> bool:
    return path in QUIET_PATHS or path.startswith(QUIET_PREFIXES)


def is_anonymous_submission(request: Request) -> bool:
    """Public report intake: the submitter's address is never logged"""
    return request.method == "POST" and request.url.path == f"{settings.API_PREFIX}/report"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request with status and duration; responses carry
    X-Request-ID and X-Response-Time.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        started = time.perf_counter()
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.log_error_with_context(
                exc,
                context=f"{request.method} {path}",
                duration_ms=round(elapsed_ms, 2),
            )
            raise
        finally:
            set_user_id("")

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

        if not should_skip_logging(path):
            client = {}
            if not is_anonymous_submission(request):
                client["client_ip"] = request.client.host if request.client else "unknown"
            logger.log_request(request.method, path, response.status_code, elapsed_ms, **client)

            if elapsed_ms > SLOW_REQUEST_MS:
                logger.warning(f"Slow request: {request.method} {path} took {elapsed_ms:.0f}ms")

        set_request_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers on every response"""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        # The dashboard embeds evidence files from another origin
        "Cross-Origin-Resource-Policy": "cross-origin",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject bodies whose declared Content-Length exceeds max_size"""

    def __init__(self, app: ASGIApp, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")

        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(
                f"Rejected {request.method} {request.url.path}: body of {declared} bytes exceeds {self.max_size}",
                extra={"event_type": "request_too_large", "content_length": int(declared)},
            )
            return JSONResponse(
                status_code=413,
                content={
                    "error": f"Request body too large. Maximum size is {self.max_size // (1024 * 1024)}MB",
                    "code": "REQUEST_TOO_LARGE",
                },
            )

        return await call_next(request)


__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "RequestSizeLimitMiddleware",
    "should_skip_logging",
    "is_anonymous_submission",
]
