"""Unified provider abstraction for Gemini and ChatGPT."""

from .base import (
    LLMProvider,
    MediaResponse,
    ProviderAttachment,
    ProviderCapabilities,
    ProviderRequest,
    ProviderResponse,
)
from .config import ProviderConfig, ProviderSettings, load_provider_config
from .exceptions import (
    GenerationError,
    ProviderConfigError,
    ProviderError,
    ProviderResponseError,
    UnsupportedOperationError,
)
from .factory import ProviderFactory
from .mock import MockProvider

__all__ = [
    "LLMProvider",
    "MediaResponse",
    "ProviderAttachment",
    "ProviderCapabilities",
    "ProviderRequest",
    "ProviderResponse",
    "ProviderConfig",
    "ProviderSettings",
    "load_provider_config",
    "GenerationError",
    "ProviderConfigError",
    "ProviderError",
    "ProviderResponseError",
    "UnsupportedOperationError",
    "ProviderFactory",
    "MockProvider",
]
