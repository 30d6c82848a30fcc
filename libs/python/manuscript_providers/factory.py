"""Provider lookup by configured name."""

from __future__ import annotations

from typing import Dict, Type

from .base import LLMProvider
from .config import ProviderConfig, load_provider_config
from .exceptions import ProviderConfigError
from .gemini import GeminiProvider
from .mock import MockProvider
from .openai import OpenAIProvider

PROVIDER_MAP: Dict[str, Type[LLMProvider]] = {
    cls.name: cls for cls in (GeminiProvider, OpenAIProvider, MockProvider)
}


class ProviderFactory:
    """Builds the adapter named by a :class:`ProviderConfig`."""

    @staticmethod
    def create(config: ProviderConfig | None = None) -> LLMProvider:
        """Instantiate the configured provider, reading the environment if needed.

        Raises:
            ProviderConfigError: If the name is not registered.
        """

        resolved = config or load_provider_config()
        try:
            provider_cls = PROVIDER_MAP[resolved.name.lower()]
        except KeyError:
            raise ProviderConfigError(
                f"Unknown provider: {resolved.name} (expected one of {', '.join(sorted(PROVIDER_MAP))})"
            ) from None
        return provider_cls(resolved)

    @staticmethod
    def register(name: str, provider_cls: Type[LLMProvider]) -> None:
        PROVIDER_MAP[name.lower()] = provider_cls

    @staticmethod
    def available() -> list[str]:
        return sorted(PROVIDER_MAP)
