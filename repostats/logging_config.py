"""
Structured JSON logging with per-request ``request_id``.

Usage:
    Call ``setup_logging()`` once at startup.
    The middleware in ``main.py`` sets ``request_id`` in ``contextvars``
    so every log line includes it automatically. Fields passed through
    ``extra=`` (e.g. ``cache_key``, ``elapsed_ms``) are copied into the line.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import uuid
from datetime import datetime, timezone

# Context variable for request tracing
request_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default="-"
)

_EXTRA_FIELDS = ("cache_key", "url", "method", "path", "status_code", "elapsed_ms")

# Chatty third-party loggers kept at WARNING unless we run at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_ctx.get("-"),
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger with JSON output to stdout."""
    level = level.upper()
    root = logging.getLogger()
    root.setLevel(level)

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    if level != "DEBUG":
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def new_request_id() -> str:
    """Generate and return a new request id (short UUID)."""
    return uuid.uuid4().hex[:12]
