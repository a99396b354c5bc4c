"""Logging configuration for chunkpilot."""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

# Context variable for the upload session currently being transmitted
upload_session_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "upload_session_id", default=None
)

_STANDARD_RECORD_FIELDS = frozenset(
    [
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName",
        "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "getMessage", "taskName",
    ]
)


class JsonLogFormatter(logging.Formatter):
    """Single-line JSON formatter for log shipping.

    Each record becomes one JSON object. Fields passed through
    ``logger.info(..., extra={...})`` are copied to the top level, and the
    active upload session id is attached when one is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        session_id = upload_session_context.get()
        if session_id:
            log_entry["upload_session_id"] = session_id

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_FIELDS:
                log_entry[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            log_entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
            log_entry["exception_type"] = type(error).__name__
            log_entry["exception_message"] = str(error)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging() -> None:
    """Configure logging for the application.

    Logs go to stdout. Local development gets a plain text format at DEBUG
    level; every other environment gets JSON lines at ``LOG_LEVEL``.
    """
    from chunkpilot.core.config import settings

    handler = logging.StreamHandler(sys.stdout)
    if settings.ENV == "local":
        log_level = logging.DEBUG
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    else:
        log_level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
        handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # httpx logs every request at INFO; chunk uploads make that noisy
    logging.getLogger("httpx").setLevel(logging.WARNING)
