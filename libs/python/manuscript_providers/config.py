"""Provider configuration read from ``<PROVIDER>_*`` environment variables."""

from __future__ import annotations

import os
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ProviderConfigError

PROVIDER_ENV_VAR = "LLM_PROVIDER"
DEFAULT_PROVIDER = "gemini"

# Optional tuning variables, suffix -> (settings field, parser).
_OPTIONAL_SETTINGS: dict[str, tuple[str, Callable[[str], object]]] = {
    "TEMPERATURE": ("temperature", float),
    "MAX_OUTPUT_TOKENS": ("max_output_tokens", int),
    "TOP_P": ("top_p", float),
    "THINKING_BUDGET": ("thinking_budget", int),
}


class ProviderSettings(BaseModel):
    temperature: float = Field(0.7, ge=0, le=2)
    max_output_tokens: int | None = Field(None, ge=16)
    top_p: float | None = Field(None, ge=0, le=1)
    # Gemini only; -1 lets the model pick its own budget.
    thinking_budget: int | None = None


class ProviderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    api_key: str
    model: str
    # Cover art and narration models; adapters fall back to their own defaults.
    image_model: str | None = None
    speech_model: str | None = None
    settings: ProviderSettings = Field(default_factory=ProviderSettings)


def load_provider_config(prefix: str | None = None) -> ProviderConfig:
    """Build a :class:`ProviderConfig` for ``prefix`` (default: ``$LLM_PROVIDER``).

    ``<PREFIX>_API_KEY`` and ``<PREFIX>_MODEL`` are required, while
    ``<PREFIX>_IMAGE_MODEL`` and ``<PREFIX>_SPEECH_MODEL`` are optional. Each optional
    suffix in ``_OPTIONAL_SETTINGS`` overrides the matching
    :class:`ProviderSettings` default; blank values are ignored and a
    non-positive ``MAX_OUTPUT_TOKENS`` means "no limit".

    Raises:
        ProviderConfigError: A required variable is missing or a value does
            not parse or validate.
    """

    env_prefix = (prefix or os.getenv(PROVIDER_ENV_VAR, DEFAULT_PROVIDER)).upper()
    api_key = os.getenv(f"{env_prefix}_API_KEY")
    model = os.getenv(f"{env_prefix}_MODEL")
    if not api_key or not model:
        raise ProviderConfigError(f"{env_prefix}_API_KEY and {env_prefix}_MODEL must be configured")

    overrides: dict[str, object] = {}
    for suffix, (field_name, parse) in _OPTIONAL_SETTINGS.items():
        variable = f"{env_prefix}_{suffix}"
        raw = (os.getenv(variable) or "").strip()
        if not raw:
            continue
        try:
            overrides[field_name] = parse(raw)
        except ValueError as exc:
            raise ProviderConfigError(f"{variable} must be a valid {parse.__name__}") from exc

    if overrides.get("max_output_tokens", 1) <= 0:
        overrides.pop("max_output_tokens")

    try:
        settings = ProviderSettings(**overrides)
    except ValidationError as exc:
        raise ProviderConfigError(f"Invalid {env_prefix} settings: {exc}") from exc
    return ProviderConfig(
        name=env_prefix.lower(),
        api_key=api_key,
        model=model,
        image_model=os.getenv(f"{env_prefix}_IMAGE_MODEL") or None,
        speech_model=os.getenv(f"{env_prefix}_SPEECH_MODEL") or None,
        settings=settings,
    )
