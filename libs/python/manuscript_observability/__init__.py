"""Shared observability helpers used across Manuscript Studio services."""

from .logging import current_log_context, log_context, setup_logging
from .metrics import (
    observe_chapter,
    observe_provider_response,
    observe_retry,
    observe_run_finished,
    observe_run_started,
    setup_fastapi_metrics,
)

__all__ = [
    "current_log_context",
    "log_context",
    "setup_logging",
    "observe_chapter",
    "observe_provider_response",
    "observe_retry",
    "observe_run_finished",
    "observe_run_started",
    "setup_fastapi_metrics",
]
