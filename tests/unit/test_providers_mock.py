"""Tests for the mock provider and factory."""

import asyncio
import json

import pytest

from manuscript_providers import (
    MockProvider,
    ProviderConfig,
    ProviderConfigError,
    ProviderFactory,
    ProviderRequest,
    ProviderSettings,
)
from manuscript_providers.mock import MOCK_IMAGE
from manuscript_providers.pricing import estimate_cost


def test_mock_generate_sync() -> None:
    provider = MockProvider()
    request = ProviderRequest(prompt="Hello world")
    response = asyncio.run(provider.generate(request))
    assert response.model == "mock"
    assert "Mock response" in response.text
    assert response.prompt_tokens > 0


def test_factory_creates_mock_when_config_provided() -> None:
    config = ProviderConfig(
        name="mock",
        api_key="mock",
        model="mock",
        settings=ProviderSettings(),
    )
    provider = ProviderFactory.create(config)
    assert isinstance(provider, MockProvider)


def test_factory_register_adds_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    from manuscript_providers import factory

    monkeypatch.setattr(factory, "PROVIDER_MAP", dict(factory.PROVIDER_MAP))
    ProviderFactory.register("Offline", MockProvider)

    assert ProviderFactory.available() == ["gemini", "mock", "offline", "openai"]
    provider = ProviderFactory.create(ProviderConfig(name="offline", api_key="x", model="mock"))
    assert isinstance(provider, MockProvider)


def test_factory_rejects_unknown_provider() -> None:
    config = ProviderConfig(name="nope", api_key="x", model="y")
    with pytest.raises(ProviderConfigError):
        ProviderFactory.create(config)


def test_mock_json_mode() -> None:
    provider = MockProvider()
    request = ProviderRequest(prompt="List facts", json_schema={"type": "object"})
    response = asyncio.run(provider.generate(request))
    assert response.text.startswith("{")


def test_mock_outline_schema_returns_chapters() -> None:
    provider = MockProvider()
    request = ProviderRequest(
        prompt="Outline these notes",
        json_schema={"type": "object", "properties": {"chapters": {"type": "array"}}},
    )
    response = asyncio.run(provider.generate(request))
    payload = json.loads(response.text)
    assert [chapter["chapterNumber"] for chapter in payload["chapters"]] == [1, 2]


def test_estimate_cost_known_and_unknown_models() -> None:
    assert estimate_cost("gemini", "gemini-2.5-flash", 1000, 1000) > 0
    assert estimate_cost("openai", "unknown-model", 1000, 1000) is None
    assert estimate_cost("mock", "mock", 1000, 1000) == 0.0


def test_mock_media_is_deterministic() -> None:
    provider = MockProvider()

    image = asyncio.run(provider.generate_image("A cover", aspect_ratio="16:9"))
    speech = asyncio.run(provider.synthesize_speech("three short words", voice="Kore"))

    assert image.data == MOCK_IMAGE
    assert image.mime_type == "image/png"
    assert speech.data == b"\x00\x00" * 3
    assert provider.capabilities().supports_speech
