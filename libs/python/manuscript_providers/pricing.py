"""List prices used to attach an approximate USD cost to provider responses."""

from __future__ import annotations

from typing import NamedTuple


class ModelPrice(NamedTuple):
    """USD per one million prompt and completion tokens."""

    prompt: float
    completion: float


PRICES: dict[tuple[str, str], ModelPrice] = {
    ("gemini", "gemini-3-pro-preview"): ModelPrice(2.0, 12.0),
    ("gemini", "gemini-2.5-pro"): ModelPrice(1.25, 10.0),
    ("gemini", "gemini-2.5-flash"): ModelPrice(0.30, 2.5),
    ("openai", "gpt-5"): ModelPrice(1.25, 10.0),
    ("openai", "gpt-5-mini"): ModelPrice(0.25, 2.0),
    ("openai", "gpt-4.1"): ModelPrice(2.0, 8.0),
}

FREE_PROVIDERS = frozenset({"mock"})


def estimate_cost(
    provider: str,
    model: str,
    prompt_tokens: int | float | None,
    completion_tokens: int | float | None,
) -> float | None:
    """Return the cost of one call, or ``None`` for an unpriced model."""

    provider = (provider or "").lower()
    if provider in FREE_PROVIDERS:
        return 0.0
    price = PRICES.get((provider, (model or "").lower()))
    if price is None:
        return None

    tokens_in = max(prompt_tokens or 0, 0)
    tokens_out = max(completion_tokens or 0, 0)
    return round((tokens_in * price.prompt + tokens_out * price.completion) / 1_000_000, 6)


__all__ = ["ModelPrice", "PRICES", "estimate_cost"]
