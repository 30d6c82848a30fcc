"""Per-project admission control for generation runs."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from .errors import GenerationInProgressError

logger = logging.getLogger(__name__)


class Admission(str, Enum):
    ADMITTED = "admitted"
    REJECTED = "rejected"


class ConcurrencyGuard:
    """Allow at most one running pipeline per project id.

    Different projects are admitted independently. A plain lock keeps the
    check-and-claim atomic even if runs are started from worker threads.
    """

    def __init__(self) -> None:
        self._active: set[str] = set()
        self._lock = threading.Lock()

    def try_start(self, project_id: str) -> Admission:
        with self._lock:
            if project_id in self._active:
                logger.info("Rejected generation run", extra={"project_id": project_id})
                return Admission.REJECTED
            self._active.add(project_id)
        return Admission.ADMITTED

    def finish(self, project_id: str) -> None:
        with self._lock:
            self._active.discard(project_id)

    def is_running(self, project_id: str) -> bool:
        with self._lock:
            return project_id in self._active

    def active_projects(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._active)

    @contextmanager
    def slot(self, project_id: str) -> Iterator[None]:
        """Claim the project's slot for the block or raise if it is taken."""

        if self.try_start(project_id) == Admission.REJECTED:
            raise GenerationInProgressError(project_id)
        try:
            yield
        finally:
            self.finish(project_id)
