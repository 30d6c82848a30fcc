"""User-facing notification hooks for fatal run aborts."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Receives the reason a run stopped so the UI can alert the user."""

    @abstractmethod
    def on_fatal(self, project_id: str, reason: str) -> None:
        """Called exactly once when a run aborts on a fatal error."""


class LoggingNotifier(Notifier):
    def on_fatal(self, project_id: str, reason: str) -> None:
        logger.error("Generation stopped: %s", reason, extra={"project_id": project_id})


class RecordingNotifier(LoggingNotifier):
    """Logs like :class:`LoggingNotifier` and keeps the last reason per project."""

    def __init__(self) -> None:
        self._reasons: dict[str, str] = {}

    def on_fatal(self, project_id: str, reason: str) -> None:
        super().on_fatal(project_id, reason)
        self._reasons[project_id] = reason

    def last_reason(self, project_id: str) -> str | None:
        return self._reasons.get(project_id)

    def clear(self, project_id: str) -> None:
        self._reasons.pop(project_id, None)
