"""Custom exceptions used by provider adapters."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """Base error raised for provider failures."""


class ProviderConfigError(ProviderError):
    """Raised when configuration is missing or invalid."""


class ProviderResponseError(ProviderError):
    """Raised when a provider returns an unusable response."""


class GenerationError(ProviderError):
    """Failure reported by a generative backend call.

    ``status_code`` mirrors the HTTP status when the SDK exposes one and
    ``reason`` carries the backend's symbolic status (``PERMISSION_DENIED``,
    ``RESOURCE_EXHAUSTED``...). ``fatal`` lets an adapter flag the credential
    as unusable outright.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        fatal: bool = False,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.fatal = fatal
        self.reason = reason


class UnsupportedOperationError(ProviderError):
    """Raised when the configured backend has no image or speech output."""
