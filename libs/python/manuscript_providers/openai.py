"""Adapter for OpenAI chat completions, image generation and speech."""

from __future__ import annotations

import base64
import binascii
import time
from contextlib import contextmanager
from typing import Any, Iterator

from openai import APIConnectionError, APIStatusError, AsyncOpenAI

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

DEFAULT_IMAGE_MODEL = "gpt-image-1"
DEFAULT_SPEECH_MODEL = "gpt-4o-mini-tts"
DEFAULT_VOICE = "alloy"
OPENAI_VOICES = frozenset(
    {"alloy", "ash", "ballad", "coral", "echo", "fable", "nova", "onyx", "sage", "shimmer", "verse"}
)
# ``response_format="pcm"`` is 16-bit little-endian mono at 24 kHz.
SPEECH_MIME_TYPE = "audio/L16;codec=pcm;rate=24000"
IMAGE_SIZES = {
    "1:1": "1024x1024",
    "3:4": "1024x1536",
    "9:16": "1024x1536",
    "4:3": "1536x1024",
    "16:9": "1536x1024",
}


@contextmanager
def _translated_errors() -> Iterator[None]:
    try:
        yield
    except APIStatusError as exc:
        raise GenerationError(exc.message, status_code=exc.status_code) from exc
    except APIConnectionError as exc:
        raise GenerationError(f"OpenAI connection failed: {exc}") from exc


def _user_message(request: ProviderRequest) -> dict[str, Any]:
    content: list[dict[str, Any]] = [{"type": "text", "text": request.prompt}]
    for attachment in request.attachments:
        if attachment.label:
            content.append({"type": "text", "text": attachment.label})
        data_url = f"data:{attachment.mime_type};base64,{base64.b64encode(attachment.data).decode('ascii')}"
        content.append({"type": "image_url", "image_url": {"url": data_url}})
    return {"role": "user", "content": content}


class OpenAIProvider(LLMProvider):
    name = "openai"

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        self._client = AsyncOpenAI(api_key=config.api_key)

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_json_mode=True,
            supports_images=True,
            supports_image_generation=True,
            supports_speech=True,
        )

    def _completion_kwargs(self, request: ProviderRequest) -> dict[str, Any]:
        call = resolve_call_settings(request, self._config.settings)
        messages = [{"role": "system", "content": request.system_prompt}] if request.system_prompt else []
        messages.append(_user_message(request))

        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "temperature": call.temperature,
        }
        if call.top_p is not None:
            kwargs["top_p"] = call.top_p
        if call.max_output_tokens:
            kwargs["max_completion_tokens"] = call.max_output_tokens
        if request.json_schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "manuscript", "schema": request.json_schema},
            }
        return kwargs

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        started = time.perf_counter()
        with _translated_errors():
            completion = await self._client.chat.completions.create(**self._completion_kwargs(request))
        elapsed_ms = (time.perf_counter() - started) * 1000

        if not completion.choices:
            raise ProviderResponseError("OpenAI returned no choices")
        usage = completion.usage
        tokens_in = usage.prompt_tokens if usage else 0
        tokens_out = usage.completion_tokens if usage else 0
        return ProviderResponse(
            text=completion.choices[0].message.content or "",
            raw=completion,
            model=completion.model,
            prompt_tokens=tokens_in,
            completion_tokens=tokens_out,
            cost_usd=estimate_cost(self.name, completion.model, tokens_in, tokens_out),
            latency_ms=elapsed_ms,
        )

    async def generate_image(self, prompt: str, *, aspect_ratio: str = "1:1") -> MediaResponse:
        model = self._config.image_model or DEFAULT_IMAGE_MODEL
        started = time.perf_counter()
        with _translated_errors():
            result = await self._client.images.generate(
                model=model, prompt=prompt, size=IMAGE_SIZES.get(aspect_ratio, "1024x1024")
            )
        elapsed_ms = (time.perf_counter() - started) * 1000

        encoded = result.data[0].b64_json if result.data else None
        if not encoded:
            raise ProviderResponseError("No image data found in response")
        try:
            data = base64.b64decode(encoded)
        except (binascii.Error, ValueError) as exc:
            raise ProviderResponseError("Image payload was not valid base64") from exc
        return MediaResponse(data, "image/png", model, elapsed_ms)

    async def synthesize_speech(self, text: str, *, voice: str) -> MediaResponse:
        model = self._config.speech_model or DEFAULT_SPEECH_MODEL
        # Voice names from other backends (e.g. Kore) fall back to the default.
        openai_voice = voice.lower() if voice.lower() in OPENAI_VOICES else DEFAULT_VOICE
        started = time.perf_counter()
        with _translated_errors():
            audio = await self._client.audio.speech.create(
                model=model, voice=openai_voice, input=text, response_format="pcm"
            )
        elapsed_ms = (time.perf_counter() - started) * 1000

        if not audio.content:
            raise ProviderResponseError("No audio data generated")
        return MediaResponse(audio.content, SPEECH_MIME_TYPE, model, elapsed_ms)
