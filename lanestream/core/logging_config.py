"""Structured logging. Passwords and tokens never reach log output."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

_SENSITIVE_WORDS = ("password", "token", "secret", "api_key", "bearer")

# Standard LogRecord attributes; everything else on a record came from `extra`
_RECORD_ATTRS = frozenset(
    (
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
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
        "asctime",
    )
)


def _is_sensitive(text: str) -> bool:
    lowered = text.lower()
    return any(w in lowered for w in _SENSITIVE_WORDS)


def _redact(obj: Any, key: str = "") -> Any:
    if key and _is_sensitive(key):
        return "[REDACTED]"
    if isinstance(obj, dict):
        return {k: _redact(v, str(k)) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_redact(v) for v in obj]
    if isinstance(obj, str) and _is_sensitive(obj):
        return "[REDACTED]"
    return obj


class StructuredFormatter(logging.Formatter):
    """JSON or key=value lines with `extra` fields attached and secrets redacted."""

    def __init__(self, use_json: bool = True) -> None:
        super().__init__()
        self.use_json = use_json

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                log_dict[key] = _redact(value, key)
        if self.use_json:
            return json.dumps(log_dict, default=str, ensure_ascii=False)
        return " ".join(f"{k}={v!r}" for k, v in log_dict.items())


def setup_logging(level: str = "INFO", use_json: bool = True) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter(use_json=use_json))
        root.addHandler(handler)
