"""Background run bookkeeping for the HTTP layer."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict

from manuscript_schemas import WritingStyle

from .errors import GenerationInProgressError, PipelineError
from .notifier import RecordingNotifier
from .pipeline import CancellationToken, GenerationPipeline, GenerationRun

logger = logging.getLogger(__name__)


class RunRegistry:
    """Owns the asyncio task, cancel token and latest run record per project.

    ``start`` checks admission synchronously so callers can answer a busy
    project immediately; the pipeline's guard remains the authority once
    the task is running.
    """

    def __init__(self, pipeline: GenerationPipeline, notifier: RecordingNotifier | None = None) -> None:
        self._pipeline = pipeline
        self._notifier = notifier
        self._tasks: Dict[str, asyncio.Task] = {}
        self._tokens: Dict[str, CancellationToken] = {}
        self._runs: Dict[str, GenerationRun] = {}

    @property
    def pipeline(self) -> GenerationPipeline:
        return self._pipeline

    def is_active(self, project_id: str) -> bool:
        task = self._tasks.get(project_id)
        if task is not None and not task.done():
            return True
        return self._pipeline.guard.is_running(project_id)

    def start(self, project_id: str, style: WritingStyle | str = WritingStyle.STANDARD) -> GenerationRun:
        if self.is_active(project_id):
            raise GenerationInProgressError(project_id)

        run = GenerationRun(project_id=project_id, style=WritingStyle(style))
        token = CancellationToken()
        if self._notifier is not None:
            self._notifier.clear(project_id)

        self._runs[project_id] = run
        self._tokens[project_id] = token
        self._tasks[project_id] = asyncio.create_task(
            self._drive(run, token), name=f"generation-{project_id}"
        )
        logger.info(
            "Scheduled generation run",
            extra={"project_id": project_id, "run_id": run.run_id, "style": run.style.value},
        )
        return run

    def cancel(self, project_id: str) -> bool:
        """Ask the active run to stop before its next chapter.

        Returns ``False`` when there is nothing to cancel.
        """

        token = self._tokens.get(project_id)
        run = self._runs.get(project_id)
        if token is None or run is None or run.finished:
            return False
        token.cancel()
        logger.info("Cancellation requested", extra={"project_id": project_id})
        return True

    def status(self, project_id: str) -> GenerationRun | None:
        return self._runs.get(project_id)

    def fatal_reason(self, project_id: str) -> str | None:
        if self._notifier is None:
            return None
        return self._notifier.last_reason(project_id)

    async def wait(self, project_id: str) -> GenerationRun | None:
        task = self._tasks.get(project_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self._runs.get(project_id)

    async def shutdown(self) -> None:
        """Cancel every running task and wait for them to unwind."""

        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled generation runs on shutdown", extra={"count": len(pending)})
        self._tasks.clear()
        self._tokens.clear()

    async def _drive(self, run: GenerationRun, token: CancellationToken) -> None:
        try:
            await self._pipeline.run(run.project_id, run.style, cancel_token=token, run=run)
        except PipelineError as exc:
            if not run.finished:
                run.abort(str(exc))
            logger.warning(
                "Generation run rejected: %s",
                exc,
                extra={"project_id": run.project_id, "run_id": run.run_id},
            )
        except Exception:  # noqa: BLE001 - recorded on the run and logged by the pipeline
            logger.debug("Generation run ended with error", extra={"run_id": run.run_id})
        finally:
            self._tokens.pop(run.project_id, None)
