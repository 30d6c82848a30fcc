"""Provider-neutral request and response types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping, MutableMapping, NamedTuple

from .exceptions import UnsupportedOperationError

if TYPE_CHECKING:  # pragma: no cover
    from .config import ProviderSettings


@dataclass(slots=True)
class ProviderAttachment:
    """An image source sent inline after the prompt, optionally captioned."""

    data: bytes
    mime_type: str
    label: str | None = None


@dataclass(slots=True)
class ProviderRequest:
    prompt: str
    system_prompt: str | None = None
    attachments: list[ProviderAttachment] = field(default_factory=list)
    # When set, the provider is asked for JSON matching this schema.
    json_schema: Mapping[str, Any] | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None
    # Free-form tags such as ``operation`` and ``chapter``; never sent upstream.
    metadata: MutableMapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ProviderResponse:
    text: str
    raw: Any
    model: str
    prompt_tokens: int
    completion_tokens: int
    cost_usd: float | None = None
    latency_ms: float | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class MediaResponse:
    """Binary output of an image or speech call."""

    data: bytes
    mime_type: str
    model: str
    latency_ms: float | None = None


@dataclass(slots=True)
class ProviderCapabilities:
    supports_json_mode: bool = False
    # Accepts inline image attachments as input.
    supports_images: bool = False
    supports_image_generation: bool = False
    supports_speech: bool = False


class CallSettings(NamedTuple):
    """Sampling values for one call after request overrides are applied."""

    temperature: float
    max_output_tokens: int | None
    top_p: float | None
    thinking_budget: int | None


def resolve_call_settings(request: ProviderRequest, defaults: "ProviderSettings") -> CallSettings:
    """Prefer values set on ``request`` and fall back to the configured defaults."""

    temperature = defaults.temperature if request.temperature is None else request.temperature
    max_output = request.max_output_tokens or defaults.max_output_tokens
    return CallSettings(temperature, max_output or None, defaults.top_p, defaults.thinking_budget)


class LLMProvider(ABC):
    """Base class for the text generation backends.

    Adapters wrap SDK failures in
    :class:`~manuscript_providers.exceptions.GenerationError` so the pipeline
    can classify them without importing any SDK.
    """

    name: str

    @abstractmethod
    def capabilities(self) -> ProviderCapabilities:
        ...

    @abstractmethod
    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        """Send ``request`` upstream and return the completion text with usage."""

    async def generate_image(self, prompt: str, *, aspect_ratio: str = "1:1") -> MediaResponse:
        raise UnsupportedOperationError(f"The {self.name} provider cannot generate images")

    async def synthesize_speech(self, text: str, *, voice: str) -> MediaResponse:
        raise UnsupportedOperationError(f"The {self.name} provider cannot synthesize speech")
