"""
Exceptions raised by textweaver.

Kept in their own module so the provider gateway, the stores and the
orchestrator can share them without import cycles.
"""

from __future__ import annotations

from typing import Any


class TextweaverError(Exception):
    """Base error with an optional machine-readable code and details."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigError(TextweaverError):
    """Provider missing or misconfigured, or the request was rejected (4xx).

    Not retryable without user intervention.
    """


class ProviderError(TextweaverError):
    """Transport failure, server error or unusable response. Retryable."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.provider = provider
        self.status_code = status_code


class RateLimitError(ProviderError):
    """The provider signalled throttling (HTTP 429)."""


class AlreadyRunningError(TextweaverError):
    """A translation loop is already active for this project."""


class ProjectNotFoundError(TextweaverError):
    """No project with the given id."""


class InvalidStateError(TextweaverError):
    """The requested transition is not allowed from the project's current status."""
