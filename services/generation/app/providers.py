"""Provider resolution for the generation service."""

from __future__ import annotations

import os

from manuscript_providers import (
    LLMProvider,
    ProviderConfig,
    ProviderFactory,
    ProviderSettings,
    load_provider_config,
)
from manuscript_providers.config import DEFAULT_PROVIDER, PROVIDER_ENV_VAR

from .models import ProviderOverride


def resolve_provider_config(override: ProviderOverride | None = None) -> ProviderConfig:
    provider_name = (
        override.name if override and override.name else os.getenv(PROVIDER_ENV_VAR, DEFAULT_PROVIDER)
    )

    if provider_name.lower() == "mock":
        return ProviderConfig(name="mock", api_key="mock", model="mock", settings=ProviderSettings())

    config = load_provider_config(prefix=provider_name)
    if override is None:
        return config

    settings_updates = {}
    if override.temperature is not None:
        settings_updates["temperature"] = override.temperature
    if override.max_output_tokens is not None:
        settings_updates["max_output_tokens"] = override.max_output_tokens

    update_kwargs: dict[str, object] = {}
    if override.model:
        update_kwargs["model"] = override.model
    if settings_updates:
        update_kwargs["settings"] = config.settings.model_copy(update=settings_updates)
    return config.model_copy(update=update_kwargs) if update_kwargs else config


def resolve_provider(override: ProviderOverride | None = None) -> LLMProvider:
    return ProviderFactory.create(resolve_provider_config(override))
