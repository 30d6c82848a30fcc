"""Fatal vs. transient classification of generation failures."""

from __future__ import annotations

from manuscript_providers import GenerationError
from manuscript_schemas import ErrorKind

FATAL_STATUS_CODES = frozenset({401, 403})

# Substrings that mean the credential itself is unusable (leaked, revoked,
# or lacking permission); matched case-insensitively against message and reason.
FATAL_MARKERS = (
    "leaked",
    "api key",
    "permission_denied",
    "revoked",
    "unauthenticated",
)


def classify(error: BaseException) -> ErrorKind:
    """Decide whether ``error`` should abort the whole run or be retried."""

    if isinstance(error, GenerationError) and error.fatal:
        return ErrorKind.FATAL

    if _status_code(error) in FATAL_STATUS_CODES:
        return ErrorKind.FATAL

    haystack = " ".join(
        part
        for part in (
            str(getattr(error, "message", "") or ""),
            str(getattr(error, "reason", "") or ""),
            _status_text(error),
            str(error),
        )
        if part
    ).casefold()
    if any(marker in haystack for marker in FATAL_MARKERS):
        return ErrorKind.FATAL

    return ErrorKind.TRANSIENT


def is_fatal(error: BaseException) -> bool:
    return classify(error) == ErrorKind.FATAL


def _status_code(error: BaseException) -> int | None:
    for attr in ("status_code", "code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _status_text(error: BaseException) -> str:
    value = getattr(error, "status", None)
    return value if isinstance(value, str) else ""
