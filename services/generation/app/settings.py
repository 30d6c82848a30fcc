"""Environment-driven settings for the generation service."""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, Field

from .context import DEFAULT_SOURCE_CHAR_LIMIT

ENV_PREFIX = "GENERATION_"


class PipelineSettings(BaseModel):
    """Knobs for retries, timeouts, wake lock and project storage."""

    max_attempts: int = Field(3, ge=1, le=10)
    backoff_base_seconds: float = Field(1.0, ge=0)
    timeout_seconds: float | None = Field(
        300.0, gt=0, description="Upper bound for one generator call; expiry is retried"
    )
    wake_lock: bool = True
    store_backend: Literal["memory", "redis"] = "memory"
    redis_url: str | None = None
    source_char_limit: int = Field(DEFAULT_SOURCE_CHAR_LIMIT, ge=1)


def load_pipeline_settings() -> PipelineSettings:
    """Read settings from the environment.

    Environment variables used:
        GENERATION_MAX_ATTEMPTS
        GENERATION_BACKOFF_BASE_SECONDS
        GENERATION_TIMEOUT_SECONDS (``0`` or ``none`` disables the bound)
        GENERATION_WAKE_LOCK
        PROJECT_STORE (``memory`` or ``redis``)
        REDIS_URL
        SOURCE_CHAR_LIMIT

    Raises:
        pydantic.ValidationError: If a value is out of range.
    """

    values: dict[str, object] = {}

    def read_env(key: str) -> str | None:
        raw = os.getenv(f"{ENV_PREFIX}{key}")
        return raw.strip() if raw is not None and raw.strip() else None

    for key, field_name in (
        ("MAX_ATTEMPTS", "max_attempts"),
        ("BACKOFF_BASE_SECONDS", "backoff_base_seconds"),
    ):
        raw = read_env(key)
        if raw is not None:
            values[field_name] = raw

    timeout_raw = read_env("TIMEOUT_SECONDS")
    if timeout_raw is not None:
        values["timeout_seconds"] = (
            None if timeout_raw.lower() in {"0", "none", "off"} else timeout_raw
        )

    wake_lock_raw = read_env("WAKE_LOCK")
    if wake_lock_raw is not None:
        values["wake_lock"] = wake_lock_raw.lower() in {"1", "true", "yes", "on"}

    store_backend = os.getenv("PROJECT_STORE")
    if store_backend:
        values["store_backend"] = store_backend.strip().lower()
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        values["redis_url"] = redis_url
    char_limit = os.getenv("SOURCE_CHAR_LIMIT")
    if char_limit:
        values["source_char_limit"] = char_limit.strip()

    return PipelineSettings.model_validate(values)
