"""
Community Watch - Logging

Development: readable console lines plus a rotating file with request context.
Production (ENVIRONMENT=production): one JSON object per line on both outputs.

Reports are anonymous and admin credentials pass through the API, so every
record goes through ``RedactingFilter`` before it is formatted.
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from community_watch.core.config import settings

LOGGER_NAME = "community_watch"

request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

# Standard LogRecord attributes; anything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    'message', 'asctime', 'request_id', 'user_id',
}

# Extra keys whose values never reach a log sink
SENSITIVE_KEYS = frozenset({'password', 'token', 'authorization', 'hashed_password', 'smtp_password'})
REDACTED = '***'


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    """Administrator id of the current request ('' for anonymous)"""
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed via ``extra=`` on a logging call"""
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith('_')
    }


class RedactingFilter(logging.Filter):
    """Mask sensitive ``extra`` values and attach request context to the record"""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in record_extras(record):
            if key.lower() in SENSITIVE_KEYS:
                setattr(record, key, REDACTED)
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return True


class JSONFormatter(logging.Formatter):
    """Structured output for log aggregation"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if get_request_id():
            entry["request_id"] = get_request_id()
        if get_user_id():
            entry["user_id"] = get_user_id()

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        entry.update(record_extras(record))
        return json.dumps(entry, default=str)


class CommunityWatchLogger(logging.Logger):
    """
    Logger with one helper per kind of event the service emits, so each
    kind carries the same ``event_type`` and field names.
    """

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        level = logging.WARNING if status_code >= 500 else logging.INFO
        self.log(
            level,
            f"HTTP {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, username: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """Login attempts and account changes. Never pass the password."""
        outcome = "success" if success else "failed"
        detail = "".join(f" - {part}" for part in (username, reason) if part)
        self.log(
            logging.INFO if success else logging.WARNING,
            f"Auth {event}: {outcome}{detail}",
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "auth_username": username,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_forward_event(self, report_id: int, group_name: str, delivered: bool,
                          sent_by: str, reason: Optional[str] = None, **kwargs) -> None:
        """One report-to-group delivery attempt"""
        outcome = "delivered" if delivered else "failed"
        self.log(
            logging.INFO if delivered else logging.ERROR,
            f"Forward report {report_id} -> {group_name}: {outcome} (by {sent_by})"
            + (f" - {reason}" if reason else ""),
            extra={
                "event_type": "forward",
                "report_id": report_id,
                "group_name": group_name,
                "delivered": delivered,
                "sent_by": sent_by,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None,
                               **kwargs) -> None:
        self.error(
            f"Error in {context or 'unknown context'}: {type(error).__name__}: {error}",
            exc_info=error,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_context": context,
                **kwargs
            }
        )


def _build_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RedactingFilter())
    return handler


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None,
                  json_output: Optional[bool] = None) -> CommunityWatchLogger:
    """
    (Re)configure the ``community_watch`` logger.

    Arguments default to LOG_LEVEL, LOG_FILE and ENVIRONMENT=production.
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_file = settings.LOG_FILE if log_file is None else log_file
    if json_output is None:
        json_output = settings.ENVIRONMENT == "production"

    logging.setLoggerClass(CommunityWatchLogger)
    log = logging.getLogger(LOGGER_NAME)
    log.__class__ = CommunityWatchLogger  # in case it was created before setLoggerClass
    log.setLevel(getattr(logging, level, logging.INFO))
    log.propagate = False
    log.handlers.clear()

    if json_output:
        console_formatter = file_formatter = JSONFormatter()
    else:
        console_formatter = logging.Formatter("%(levelname)-8s | %(message)s")
        file_formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | "
            "%(module)s.%(funcName)s:%(lineno)d | %(message)s"
        )

    log.addHandler(_build_handler(logging.StreamHandler(sys.stdout), logging.INFO, console_formatter))

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=10 * 1024 * 1024,
            backupCount=10 if json_output else 5,
            encoding="utf-8",
        )
        log.addHandler(_build_handler(file_handler, logging.DEBUG, file_formatter))

    for noisy in ("aiosmtplib", "uvicorn.access", "sqlalchemy.engine", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    log.debug("Logging initialized", extra={"json_logging": json_output, "log_level": level})
    return log


logger: CommunityWatchLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'generate_request_id',
    'record_extras',
    'RedactingFilter',
    'JSONFormatter',
    'CommunityWatchLogger',
]
