"""JSON logging with per-task context (project, run, chapter)."""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

LOG_LEVEL_ENV_VAR = "MANUSCRIPT_LOG_LEVEL"
CAPTURE_WARNINGS_ENV_VAR = "MANUSCRIPT_CAPTURE_WARNINGS"

_TRUTHY = {"1", "true", "t", "yes", "y"}
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_bound_fields: ContextVar[Dict[str, Any]] = ContextVar("manuscript_log_context", default={})

# Attributes every LogRecord carries; anything else arrived through ``extra``
# or the bound context.
_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


def _serialisable(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


class ContextFilter(logging.Filter):
    """Copy bound context onto each record and stamp the service name."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _bound_fields.get().items():
            record.__dict__.setdefault(key, value)
        if getattr(record, "service", None) is None:
            record.service = self.service_name
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
            and key not in entry
            and not key.startswith("_")
            and value is not None
            and _serialisable(value)
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=True)


def setup_logging(
    service_name: str,
    level: str | int | None = None,
    *,
    capture_warnings: bool | None = None,
) -> None:
    """Send JSON lines to stdout for the root and uvicorn loggers.

    ``level`` falls back to ``$MANUSCRIPT_LOG_LEVEL`` and then ``INFO``.
    Safe to call more than once; handlers are replaced each time.
    """

    level = level or os.getenv(LOG_LEVEL_ENV_VAR, "INFO").upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JsonFormatter}},
            "filters": {"context": {"()": ContextFilter, "service_name": service_name}},
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "json",
                    "filters": ["context"],
                }
            },
            "root": {"level": level, "handlers": ["stdout"]},
            "loggers": {
                name: {"level": level, "handlers": ["stdout"], "propagate": False}
                for name in _UVICORN_LOGGERS
            },
        }
    )

    if capture_warnings is None:
        capture_warnings = os.getenv(CAPTURE_WARNINGS_ENV_VAR, "").lower() in _TRUTHY
    logging.captureWarnings(capture_warnings)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every record logged inside the block.

    A ``None`` value unbinds a field set by an outer block.
    """

    merged = {**_bound_fields.get(), **fields}
    token = _bound_fields.set({key: value for key, value in merged.items() if value is not None})
    try:
        yield
    finally:
        _bound_fields.reset(token)


def current_log_context() -> Dict[str, Any]:
    return dict(_bound_fields.get())
