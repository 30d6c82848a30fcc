"""Bounded exponential backoff around a single chapter generation call."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from manuscript_observability import observe_retry
from manuscript_schemas import ErrorKind

from .classifier import classify
from .errors import ChapterGenerationFailed, FatalGenerationError

logger = logging.getLogger(__name__)
SERVICE_NAME = "generation"

Operation = Callable[[], Awaitable[str]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class RetryPolicy:
    """Retry transient failures; surface fatal ones immediately.

    ``delay(attempt) = base_delay * 2 ** attempt`` with attempts counted from 1,
    so the default policy sleeps 2s and then 4s before giving up on the third
    failure.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    sleep: Sleep = field(default=asyncio.sleep, repr=False)
    classifier: Callable[[BaseException], ErrorKind] = field(default=classify, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)

    async def execute(self, operation: Operation, *, chapter_number: int) -> str:
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as exc:  # noqa: BLE001 - every failure is classified below
                last_error = exc
                if self.classifier(exc) == ErrorKind.FATAL:
                    logger.error(
                        "Fatal generation error, not retrying",
                        extra={"chapter": chapter_number, "attempt": attempt},
                    )
                    raise FatalGenerationError(chapter_number, exc) from exc

                if attempt >= self.max_attempts:
                    break

                wait_seconds = self.delay(attempt)
                logger.warning(
                    "Chapter attempt failed, retrying",
                    extra={
                        "chapter": chapter_number,
                        "attempt": attempt,
                        "retry_in_seconds": wait_seconds,
                        "error": str(exc) or exc.__class__.__name__,
                    },
                )
                observe_retry(service_name=SERVICE_NAME)
                await self.sleep(wait_seconds)

        raise ChapterGenerationFailed(chapter_number, self.max_attempts, last_error) from last_error
