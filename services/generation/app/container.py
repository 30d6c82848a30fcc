"""Wiring of stores, providers and the pipeline for the HTTP service."""

from __future__ import annotations

import logging

from manuscript_providers import LLMProvider

from .models import ProviderOverride
from .notifier import RecordingNotifier
from .pipeline import GenerationPipeline
from .providers import resolve_provider
from .retry import RetryPolicy
from .runs import RunRegistry
from .settings import PipelineSettings, load_pipeline_settings
from .store import InMemoryProjectStore, ProjectStateStore, RedisProjectStore
from .wakelock import InhibitorWakeLock, NullWakeLock, WakeLock, WakeLockCoordinator
from .writing import ChapterGenerator, ProviderChapterGenerator

logger = logging.getLogger(__name__)


def build_store(settings: PipelineSettings) -> ProjectStateStore:
    if settings.store_backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL is required when PROJECT_STORE=redis")
        return RedisProjectStore.from_url(settings.redis_url)
    return InMemoryProjectStore()


class ServiceContainer:
    """Lazily assembles the generation pipeline.

    The provider is resolved on first use so the service can start (and serve
    project edits) before credentials are configured.
    """

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        *,
        store: ProjectStateStore | None = None,
        generator: ChapterGenerator | None = None,
        provider: LLMProvider | None = None,
        wake_lock: WakeLock | None = None,
        notifier: RecordingNotifier | None = None,
    ) -> None:
        self.settings = settings or load_pipeline_settings()
        self.store = store or build_store(self.settings)
        self.notifier = notifier or RecordingNotifier()
        self._generator = generator
        self._provider = provider
        self._wake_lock = wake_lock
        self._registry: RunRegistry | None = None

    def provider(self, override: ProviderOverride | None = None) -> LLMProvider:
        if override is None and self._provider is not None:
            return self._provider
        return resolve_provider(override)

    def wake_lock_backend(self) -> WakeLock:
        if self._wake_lock is not None:
            return self._wake_lock
        return InhibitorWakeLock() if self.settings.wake_lock else NullWakeLock()

    @property
    def registry(self) -> RunRegistry:
        if self._registry is None:
            generator = self._generator or ProviderChapterGenerator(
                self.provider(), char_limit=self.settings.source_char_limit
            )
            pipeline = GenerationPipeline(
                self.store,
                generator,
                retry_policy=RetryPolicy(
                    max_attempts=self.settings.max_attempts,
                    base_delay=self.settings.backoff_base_seconds,
                ),
                wake_lock=WakeLockCoordinator(self.wake_lock_backend()),
                notifier=self.notifier,
                timeout_seconds=self.settings.timeout_seconds,
            )
            self._registry = RunRegistry(pipeline, self.notifier)
            logger.info(
                "Generation pipeline ready",
                extra={
                    "store": self.settings.store_backend,
                    "max_attempts": self.settings.max_attempts,
                    "timeout_seconds": self.settings.timeout_seconds,
                },
            )
        return self._registry

    async def close(self) -> None:
        if self._registry is not None:
            await self._registry.shutdown()
        if isinstance(self.store, RedisProjectStore):
            await self.store.close()
