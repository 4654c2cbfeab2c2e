"""
Structured logging for the calendar service.

Everything logs under the ``solarcal`` logger. Records carry the request id
(bound per request through a ContextVar) plus optional calendar context:
the user whose presets are involved, the preset touched and the anchor in
effect. Production emits one JSON object per line; development emits a
compact human-readable line.
"""

import json
import logging
import os
import sys
from bisect import bisect_right
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "solarcal"

# Optional structured fields copied from records into formatted output
CONTEXT_FIELDS = ("user_id", "preset_id", "anchor_id", "event_type", "error_code")

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_LATENCY_EDGES_MS = (10, 100, 500, 1000)
_LATENCY_LABELS = ("<10ms", "10-100ms", "100-500ms", "500-1000ms", ">=1000ms")

_MAX_FIELD_CHARS = 500


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label, so request logs stay groupable."""
    if latency_ms is None:
        return "unknown"
    return _LATENCY_LABELS[bisect_right(_LATENCY_EDGES_MS, latency_ms)]


def _utc_timestamp(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _context_of(record: logging.LogRecord) -> Dict[str, object]:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class ContextFilter(logging.Filter):
    """Fill in the bound request id when a record does not carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(_context_of(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [_utc_timestamp(record), record.levelname, f"[{LOGGER_NAME}]"]
        rid = getattr(record, "request_id", None)
        if rid:
            parts.append(f"[rid={rid}]")
        parts.append(record.getMessage())
        context = _context_of(record)
        if context:
            parts.append(" ".join(f"{k}={v}" for k, v in context.items()))
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development") -> None:
    """Install a single stdout handler on the ``solarcal`` logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(ContextFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # uvicorn keeps its own error output
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False


def _clip(value) -> str:
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) > _MAX_FIELD_CHARS:
        return text[:_MAX_FIELD_CHARS] + "...<truncated>"
    return text


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    preset_id: Optional[str] = None,
    anchor_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
):
    """Log a calendar/preset event with context fields; ``extra`` values are clipped."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {
        "request_id": request_id or get_request_id(),
        "user_id": user_id,
        "preset_id": preset_id,
        "anchor_id": anchor_id,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = _clip(value)

    getattr(logger, level, logger.info)(msg, extra=fields)
