"""Cover art and read-aloud narration through a generative provider."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Literal

from manuscript_observability import observe_provider_response
from manuscript_providers import LLMProvider, ProviderResponseError, UnsupportedOperationError
from manuscript_schemas import BookOutline

from ..context import excerpt
from .prompts import COVER_PROMPTS

logger = logging.getLogger(__name__)
SERVICE_NAME = "generation"

CoverSide = Literal["front", "back"]
AspectRatio = Literal["1:1", "3:4", "4:3", "16:9", "9:16"]

DEFAULT_VOICE = "Kore"
SPEECH_CHAR_LIMIT = 5000


@dataclass
class SpeechClip:
    """Base64 audio for one chapter, as returned to the reader."""

    audio: str
    mime_type: str
    voice: str
    truncated: bool


async def generate_cover_image(
    provider: LLMProvider,
    outline: BookOutline,
    *,
    side: CoverSide = "front",
    aspect_ratio: AspectRatio = "1:1",
) -> str:
    """Return base64 image data for the front or back cover of ``outline``.

    Raises:
        UnsupportedOperationError: If the provider cannot generate images.
        ProviderResponseError: If the provider returned no image bytes.
    """

    if not provider.capabilities().supports_image_generation:
        raise UnsupportedOperationError(f"The {provider.name} provider cannot generate images")

    prompt = COVER_PROMPTS[side].format(title=outline.title, description=outline.description or outline.title)
    media = await provider.generate_image(prompt, aspect_ratio=aspect_ratio)
    observe_provider_response(
        operation="cover",
        provider=provider.name,
        service_name=SERVICE_NAME,
        response=media,
    )
    if not media.data:
        raise ProviderResponseError("No image data found in response")

    logger.info(
        "Cover image generated",
        extra={"side": side, "mime_type": media.mime_type, "image_bytes": len(media.data)},
    )
    return base64.b64encode(media.data).decode("ascii")


async def synthesize_chapter_speech(
    provider: LLMProvider, content: str, voice: str | None = None
) -> SpeechClip:
    """Narrate the first ``SPEECH_CHAR_LIMIT`` characters of ``content``.

    Backend errors propagate so the caller can report them.
    """

    if not provider.capabilities().supports_speech:
        raise UnsupportedOperationError(f"The {provider.name} provider cannot synthesize speech")

    voice = voice or DEFAULT_VOICE
    text, truncated = excerpt(content, SPEECH_CHAR_LIMIT)
    media = await provider.synthesize_speech(text, voice=voice)
    observe_provider_response(
        operation="speech",
        provider=provider.name,
        service_name=SERVICE_NAME,
        response=media,
    )
    if not media.data:
        raise ProviderResponseError("No audio data generated")

    return SpeechClip(
        audio=base64.b64encode(media.data).decode("ascii"),
        mime_type=media.mime_type,
        voice=voice,
        truncated=truncated,
    )
