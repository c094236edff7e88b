"""Logging setup for the staging service.

Log context (job id, request id, user) is an explicit value: callers build a
LoggerAdapter with `get_logger(__name__, job_id=...)` and pass it down, and
`bind()` derives a child adapter with extra fields. Nothing is stored in
module-level state besides the stdlib logger registry.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredJSONFormatter(logging.Formatter):
    """One JSON object per record: level, message, timestamp, context."""

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            "logger_name": record.name,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            context["error_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            context["error_message"] = str(record.exc_info[1]) if record.exc_info[1] else None
            context["stack_trace"] = record.exc_text or self.formatException(record.exc_info)

        # LoggerAdapter / extra= fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                context[key] = value

        entry = {
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "context": context,
        }
        return json.dumps(entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context with per-call `extra`."""

    def process(self, msg, kwargs):
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(level: str = "INFO", structured: bool = True) -> None:
    handler = logging.StreamHandler(sys.stdout)
    if structured:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=[handler], force=True)

    for noisy in ("httpx", "httpcore", "azure", "google", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str, **context: Any) -> ContextAdapter:
    """Logger for `name` carrying `context` on every record."""
    return ContextAdapter(logging.getLogger(name), context)


def bind(log: logging.LoggerAdapter, **context: Any) -> ContextAdapter:
    """Child adapter with the parent's context plus `context`."""
    merged = dict(log.extra or {})
    merged.update(context)
    return ContextAdapter(log.logger, merged)
