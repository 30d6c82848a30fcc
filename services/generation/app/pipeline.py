"""Sequential, resumable chapter generation for a single project."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from typing import Sequence
from uuid import uuid4

from manuscript_observability import (
    log_context,
    observe_chapter,
    observe_run_finished,
    observe_run_started,
)
from manuscript_providers import GenerationError
from manuscript_schemas import (
    BookOutline,
    ChapterResult,
    ChapterSpec,
    ChapterStatus,
    ProjectPatch,
    RunState,
    Source,
    WritingStyle,
)

from .errors import ChapterGenerationFailed, FatalGenerationError, OutlineMissingError
from .guard import ConcurrencyGuard
from .notifier import LoggingNotifier, Notifier
from .retry import RetryPolicy
from .store import ProjectStateStore
from .wakelock import WakeLockCoordinator
from .writing import ChapterGenerator

logger = logging.getLogger(__name__)
SERVICE_NAME = "generation"

FAILED_CHAPTER_MESSAGE = "Generation failed. Please retry."
FATAL_CHAPTER_MESSAGE = "Stopped due to API error."
CANCELLED_REASON = "cancelled"


class CancellationToken:
    """Cooperative cancel flag, checked before each chapter starts."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ChapterOutcome:
    """Result of processing one chapter, recorded as data rather than raised."""

    number: int
    status: ChapterStatus
    content: str
    error: BaseException | None = None
    fatal: bool = False

    @property
    def reason(self) -> str | None:
        if self.error is None:
            return None
        return getattr(self.error, "reason", None) or str(self.error)


@dataclass
class GenerationRun:
    """Transient record of one pipeline invocation."""

    project_id: str
    style: WritingStyle
    run_id: str = field(default_factory=lambda: uuid4().hex)
    state: RunState = RunState.IDLE
    cursor: int = 0
    aborted: bool = False
    abort_reason: str | None = None
    completed: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def abort(self, reason: str) -> None:
        self.aborted = True
        self.abort_reason = reason
        self.state = RunState.ABORTED

    @property
    def finished(self) -> bool:
        return self.state in (RunState.COMPLETED, RunState.ABORTED)


def reconcile_chapters(
    outline_chapters: Sequence[ChapterSpec], existing: Sequence[ChapterResult]
) -> list[ChapterResult]:
    """Align stored results with the outline's chapter numbers.

    Completed chapters keep their content but take the current outline title.
    Chapters missing from the outline are dropped, and everything else (new,
    failed, or a stale ``generating`` left by an interrupted run) starts over
    as ``pending``.
    """

    by_number = {result.number: result for result in existing}
    reconciled: list[ChapterResult] = []
    for spec in sorted(outline_chapters, key=lambda chapter: chapter.number):
        prior = by_number.get(spec.number)
        if prior is not None and prior.is_complete:
            reconciled.append(prior.model_copy(update={"title": spec.title}))
        else:
            reconciled.append(ChapterResult(number=spec.number, title=spec.title))
    return reconciled


class GenerationPipeline:
    """Walks an outline chapter by chapter and records each result.

    Runs are admitted through a :class:`ConcurrencyGuard`, hold the wake lock
    for their whole lifetime, and write through ``store.merge`` only, so edits
    the UI makes to other project fields while a run is active survive.
    """

    def __init__(
        self,
        store: ProjectStateStore,
        generator: ChapterGenerator,
        *,
        retry_policy: RetryPolicy | None = None,
        guard: ConcurrencyGuard | None = None,
        wake_lock: WakeLockCoordinator | None = None,
        notifier: Notifier | None = None,
        timeout_seconds: float | None = 300.0,
    ) -> None:
        self._store = store
        self._generator = generator
        self._retry = retry_policy or RetryPolicy()
        self._guard = guard or ConcurrencyGuard()
        self._wake_lock = wake_lock or WakeLockCoordinator()
        self._notifier = notifier or LoggingNotifier()
        self._timeout = timeout_seconds

    @property
    def guard(self) -> ConcurrencyGuard:
        return self._guard

    @property
    def generator(self) -> ChapterGenerator:
        return self._generator

    async def run(
        self,
        project_id: str,
        style: WritingStyle | str = WritingStyle.STANDARD,
        *,
        cancel_token: CancellationToken | None = None,
        run: GenerationRun | None = None,
    ) -> GenerationRun:
        """Generate every unfinished chapter of ``project_id``.

        Raises:
            GenerationInProgressError: If the project already has an active run.
            OutlineMissingError: If the project has no outline chapters.
        """

        if run is None:
            run = GenerationRun(project_id=project_id, style=WritingStyle(style))
        token = cancel_token or CancellationToken()

        with self._guard.slot(project_id), log_context(project_id=project_id, run_id=run.run_id):
            run.started_at = datetime.now(timezone.utc)
            observe_run_started(service_name=SERVICE_NAME)
            try:
                async with self._wake_lock.hold():
                    await self._execute(run, token)
            except asyncio.CancelledError:
                run.abort(CANCELLED_REASON)
                logger.warning("Generation run interrupted")
                raise
            except Exception as exc:
                run.abort(str(exc) or exc.__class__.__name__)
                logger.exception("Generation run failed")
                raise
            finally:
                run.finished_at = datetime.now(timezone.utc)
                observe_run_finished(run.state.value, service_name=SERVICE_NAME)

            logger.info(
                "Generation run finished",
                extra={
                    "state": run.state.value,
                    "completed": run.completed,
                    "failed": run.failed,
                    "skipped": run.skipped,
                    "abort_reason": run.abort_reason,
                },
            )
        return run

    async def _execute(self, run: GenerationRun, token: CancellationToken) -> None:
        project = await self._store.load(run.project_id)
        if project.outline is None or not project.outline.chapters:
            raise OutlineMissingError(run.project_id)

        # Snapshot: outline edits made during the run apply to the next run.
        outline = project.outline
        sources = list(project.sources)

        results = reconcile_chapters(outline.chapters, project.chapters)
        await self._store.merge(run.project_id, ProjectPatch(chapters=results))
        completed_numbers = {result.number for result in results if result.is_complete}

        run.state = RunState.RUNNING
        logger.info(
            "Starting generation run",
            extra={
                "style": run.style.value,
                "chapter_count": len(results),
                "pending_count": len(results) - len(completed_numbers),
            },
        )

        for index, spec in enumerate(outline.chapters):
            run.cursor = index
            if token.cancelled:
                run.abort(CANCELLED_REASON)
                logger.info("Generation run cancelled", extra={"chapter": spec.number})
                break

            if spec.number in completed_numbers:
                run.skipped.append(spec.number)
                continue

            outcome = await self._process_chapter(run, spec, outline, sources)
            if outcome.status == ChapterStatus.DONE:
                run.completed.append(spec.number)
            else:
                run.failed.append(spec.number)

            if outcome.fatal:
                reason = outcome.reason or FATAL_CHAPTER_MESSAGE
                run.abort(reason)
                self._notify_fatal(run.project_id, reason)
                break

        if not run.aborted:
            run.state = RunState.COMPLETED

    async def _process_chapter(
        self,
        run: GenerationRun,
        spec: ChapterSpec,
        outline: BookOutline,
        sources: Sequence[Source],
    ) -> ChapterOutcome:
        start = perf_counter()
        with log_context(chapter=spec.number):
            await self._persist(run.project_id, spec, "", ChapterStatus.GENERATING)
            try:
                content = await self._retry.execute(
                    lambda: self._call_generator(spec, outline, sources, run.style),
                    chapter_number=spec.number,
                )
                outcome = ChapterOutcome(spec.number, ChapterStatus.DONE, content)
            except FatalGenerationError as exc:
                outcome = ChapterOutcome(
                    spec.number, ChapterStatus.FAILED, FATAL_CHAPTER_MESSAGE, error=exc, fatal=True
                )
            except ChapterGenerationFailed as exc:
                logger.warning(str(exc), extra={"attempts": exc.attempts})
                outcome = ChapterOutcome(
                    spec.number, ChapterStatus.FAILED, FAILED_CHAPTER_MESSAGE, error=exc
                )
            except asyncio.CancelledError:
                await self._persist(run.project_id, spec, "", ChapterStatus.PENDING)
                raise

            await self._persist(run.project_id, spec, outcome.content, outcome.status)

        observe_chapter(outcome.status.value, perf_counter() - start, service_name=SERVICE_NAME)
        return outcome

    async def _call_generator(
        self,
        spec: ChapterSpec,
        outline: BookOutline,
        sources: Sequence[Source],
        style: WritingStyle,
    ) -> str:
        call = self._generator.generate(spec, outline, sources, style)
        if self._timeout is None:
            content = await call
        else:
            content = await asyncio.wait_for(call, timeout=self._timeout)
        if not content or not content.strip():
            raise GenerationError(f"Empty response for chapter {spec.number}")
        return content

    async def _persist(
        self, project_id: str, spec: ChapterSpec, content: str, status: ChapterStatus
    ) -> None:
        result = ChapterResult(number=spec.number, title=spec.title, content=content, status=status)
        await self._store.merge(project_id, ProjectPatch(chapter_updates=[result]))

    def _notify_fatal(self, project_id: str, reason: str) -> None:
        try:
            self._notifier.on_fatal(project_id, reason)
        except Exception:  # noqa: BLE001 - a broken notifier must not crash the run
            logger.exception("Fatal notification failed")
