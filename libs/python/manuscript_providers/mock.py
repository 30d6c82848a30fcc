"""Offline provider returning canned manuscript text."""

from __future__ import annotations

import json

from .base import LLMProvider, MediaResponse, ProviderCapabilities, ProviderRequest, ProviderResponse
from .config import ProviderConfig, ProviderSettings

DEFAULT_TEXT = "Mock response generated for testing."
MOCK_IMAGE = b"\x89PNG\r\n\x1a\nmock-cover"
MOCK_AUDIO_MIME_TYPE = "audio/L16;codec=pcm;rate=24000"


def _outline_payload(request: ProviderRequest) -> dict:
    return {
        "title": "Mock Book",
        "description": DEFAULT_TEXT,
        "chapters": [
            {"chapterNumber": 1, "title": "Beginnings", "summary": request.prompt[:80]},
            {"chapterNumber": 2, "title": "Endings", "summary": DEFAULT_TEXT},
        ],
    }


class MockProvider(LLMProvider):
    """Deterministic stand-in used by tests and ``LLM_PROVIDER=mock``.

    Requests carrying the outline schema get a two-chapter outline, other
    schemas get a small JSON object, and plain prompts get ``DEFAULT_TEXT``
    followed by the start of the prompt. Images are a fixed PNG-tagged blob
    and speech is two bytes of silence per word.
    """

    name = "mock"

    def __init__(self, config: ProviderConfig | None = None) -> None:
        self._config = config or ProviderConfig(
            name="mock", api_key="mock", model="mock", settings=ProviderSettings(temperature=0.1)
        )

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=True,
            supports_images=True,
            supports_image_generation=True,
            supports_speech=True,
        )

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        schema = request.json_schema or {}
        if "chapters" in schema.get("properties", {}):
            text = json.dumps(_outline_payload(request))
        elif schema:
            text = json.dumps({"message": DEFAULT_TEXT, "echo": request.prompt[:50]})
        else:
            text = f"{DEFAULT_TEXT}\nPrompt: {request.prompt[:80]}"

        return ProviderResponse(
            text=text,
            raw={"mock": True, "operation": request.metadata.get("operation")},
            model=self._config.model,
            prompt_tokens=len(request.prompt.split()),
            completion_tokens=len(text.split()),
            cost_usd=0.0,
            latency_ms=1.0,
        )

    async def generate_image(self, prompt: str, *, aspect_ratio: str = "1:1") -> MediaResponse:
        return MediaResponse(MOCK_IMAGE, "image/png", self._config.model, latency_ms=1.0)

    async def synthesize_speech(self, text: str, *, voice: str) -> MediaResponse:
        silence = b"\x00\x00" * max(len(text.split()), 1)
        return MediaResponse(silence, MOCK_AUDIO_MIME_TYPE, self._config.model, latency_ms=1.0)
