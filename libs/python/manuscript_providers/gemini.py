"""Adapter for Google Gemini through the ``google-genai`` SDK."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .base import (
    LLMProvider,
    MediaResponse,
    ProviderCapabilities,
    ProviderRequest,
    ProviderResponse,
    resolve_call_settings,
)
from .config import ProviderConfig
from .exceptions import GenerationError, ProviderResponseError
from .pricing import estimate_cost

DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"
DEFAULT_SPEECH_MODEL = "gemini-2.5-flash-preview-tts"
# The TTS models return raw 16-bit mono PCM at 24 kHz.
SPEECH_MIME_TYPE = "audio/L16;codec=pcm;rate=24000"


@contextmanager
def _translated_errors() -> Iterator[None]:
    try:
        yield
    except genai_errors.APIError as exc:
        # ``status`` carries the RPC status name, e.g. PERMISSION_DENIED.
        raise GenerationError(exc.message or str(exc), status_code=exc.code, reason=exc.status) from exc


def _contents(request: ProviderRequest) -> list[types.Part]:
    parts = [types.Part.from_text(text=request.prompt)]
    for attachment in request.attachments:
        if attachment.label:
            parts.append(types.Part.from_text(text=attachment.label))
        parts.append(types.Part.from_bytes(data=attachment.data, mime_type=attachment.mime_type))
    return parts


def _first_inline_blob(result: types.GenerateContentResponse) -> types.Blob | None:
    for candidate in result.candidates or []:
        parts = candidate.content.parts if candidate.content else None
        for part in parts or []:
            if part.inline_data is not None and part.inline_data.data:
                return part.inline_data
    return None


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        self._client = genai.Client(api_key=config.api_key)

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=True,
            supports_images=True,
            supports_image_generation=True,
            supports_speech=True,
        )

    def _generation_config(self, request: ProviderRequest) -> types.GenerateContentConfig:
        call = resolve_call_settings(request, self._config.settings)
        options: dict[str, Any] = {"temperature": call.temperature}
        if request.system_prompt:
            options["system_instruction"] = request.system_prompt
        if call.top_p is not None:
            options["top_p"] = call.top_p
        if call.max_output_tokens:
            options["max_output_tokens"] = call.max_output_tokens
        if call.thinking_budget is not None:
            options["thinking_config"] = types.ThinkingConfig(thinking_budget=call.thinking_budget)
        if request.json_schema:
            options.update(response_mime_type="application/json", response_schema=request.json_schema)
        return types.GenerateContentConfig(**options)

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        started = time.perf_counter()
        with _translated_errors():
            result = await self._client.aio.models.generate_content(
                model=self._config.model,
                contents=_contents(request),
                config=self._generation_config(request),
            )
        elapsed_ms = (time.perf_counter() - started) * 1000

        usage = result.usage_metadata
        tokens_in = (usage.prompt_token_count or 0) if usage else 0
        tokens_out = (usage.candidates_token_count or 0) if usage else 0
        return ProviderResponse(
            text=result.text or "",
            raw=result,
            model=self._config.model,
            prompt_tokens=tokens_in,
            completion_tokens=tokens_out,
            cost_usd=estimate_cost(self.name, self._config.model, tokens_in, tokens_out),
            latency_ms=elapsed_ms,
        )

    async def generate_image(self, prompt: str, *, aspect_ratio: str = "1:1") -> MediaResponse:
        model = self._config.image_model or DEFAULT_IMAGE_MODEL
        started = time.perf_counter()
        with _translated_errors():
            result = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(image_config=types.ImageConfig(aspect_ratio=aspect_ratio)),
            )
        elapsed_ms = (time.perf_counter() - started) * 1000

        blob = _first_inline_blob(result)
        if blob is None:
            feedback = result.prompt_feedback
            if feedback is not None and feedback.block_reason:
                raise ProviderResponseError(f"Image generation blocked: {feedback.block_reason}")
            raise ProviderResponseError("No image data found in response")
        return MediaResponse(blob.data, blob.mime_type or "image/png", model, elapsed_ms)

    async def synthesize_speech(self, text: str, *, voice: str) -> MediaResponse:
        model = self._config.speech_model or DEFAULT_SPEECH_MODEL
        speech_config = types.SpeechConfig(
            voice_config=types.VoiceConfig(prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice))
        )
        started = time.perf_counter()
        with _translated_errors():
            result = await self._client.aio.models.generate_content(
                model=model,
                contents=text,
                config=types.GenerateContentConfig(response_modalities=["AUDIO"], speech_config=speech_config),
            )
        elapsed_ms = (time.perf_counter() - started) * 1000

        blob = _first_inline_blob(result)
        if blob is None:
            raise ProviderResponseError("No audio data generated")
        return MediaResponse(blob.data, blob.mime_type or SPEECH_MIME_TYPE, model, elapsed_ms)
