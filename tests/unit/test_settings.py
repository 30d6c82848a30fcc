"""Tests for generation service settings and wiring."""

import pytest
from pydantic import ValidationError

from manuscript_providers import MockProvider
from manuscript_schemas import BookOutline, ChapterSpec, Source, SourceType, WritingStyle

from services.generation.app.container import ServiceContainer, build_store
from services.generation.app.settings import PipelineSettings, load_pipeline_settings
from services.generation.app.store import InMemoryProjectStore, RedisProjectStore
from services.generation.app.wakelock import InhibitorWakeLock, NullWakeLock

ENV_KEYS = (
    "GENERATION_MAX_ATTEMPTS",
    "GENERATION_BACKOFF_BASE_SECONDS",
    "GENERATION_TIMEOUT_SECONDS",
    "GENERATION_WAKE_LOCK",
    "PROJECT_STORE",
    "REDIS_URL",
    "SOURCE_CHAR_LIMIT",
)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    settings = load_pipeline_settings()
    assert settings.max_attempts == 3
    assert settings.backoff_base_seconds == 1.0
    assert settings.timeout_seconds == 300.0
    assert settings.wake_lock is True
    assert settings.store_backend == "memory"
    assert settings.source_char_limit == 5000


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("GENERATION_BACKOFF_BASE_SECONDS", "0.5")
    monkeypatch.setenv("GENERATION_TIMEOUT_SECONDS", "none")
    monkeypatch.setenv("GENERATION_WAKE_LOCK", "off")
    monkeypatch.setenv("PROJECT_STORE", "Redis")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("SOURCE_CHAR_LIMIT", "1200")

    settings = load_pipeline_settings()

    assert settings.max_attempts == 5
    assert settings.backoff_base_seconds == 0.5
    assert settings.timeout_seconds is None
    assert settings.wake_lock is False
    assert settings.store_backend == "redis"
    assert settings.source_char_limit == 1200


def test_out_of_range_values_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "0")
    with pytest.raises(ValidationError):
        load_pipeline_settings()


def test_build_store_selects_backend() -> None:
    assert isinstance(build_store(PipelineSettings()), InMemoryProjectStore)
    redis_settings = PipelineSettings(store_backend="redis", redis_url="redis://localhost:6379/0")
    assert isinstance(build_store(redis_settings), RedisProjectStore)
    with pytest.raises(ValueError):
        build_store(PipelineSettings(store_backend="redis"))


def test_wake_lock_backend_follows_settings() -> None:
    assert isinstance(ServiceContainer(PipelineSettings()).wake_lock_backend(), InhibitorWakeLock)
    assert isinstance(ServiceContainer(PipelineSettings(wake_lock=False)).wake_lock_backend(), NullWakeLock)


def test_non_numeric_source_limit_is_a_validation_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOURCE_CHAR_LIMIT", "plenty")
    with pytest.raises(ValidationError):
        load_pipeline_settings()


def test_source_limit_reaches_the_chapter_prompt() -> None:
    container = ServiceContainer(PipelineSettings(source_char_limit=12), provider=MockProvider())
    generator = container.registry.pipeline.generator
    sources = [Source(type=SourceType.TEXT, name="diary.txt", content="abcdefghijklmnopqrstuvwxyz")]
    outline = BookOutline(title="Diary", chapters=[ChapterSpec(number=1, title="Start")])

    request = generator.build_request(outline.chapters[0], outline, sources, WritingStyle.STANDARD)

    assert "abcdefghijkl" in request.prompt
    assert "abcdefghijklm" not in request.prompt
    assert request.metadata["trimmed_sources"] == ["diary.txt"]
