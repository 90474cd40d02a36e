"""
Base classes for provider backends.

Every wire protocol implements the same interface so the gateway's retry
and rate-limit behavior does not depend on which provider is active.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
import openai

from textweaver.exceptions import ConfigError, ProviderError, RateLimitError


@dataclass
class LLMResponse:
    """Response from a provider backend."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    latency_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)


class ProviderBackend(ABC):
    """
    Abstract base class for provider backends.

    Implementations raise ``RateLimitError`` for HTTP 429, ``ConfigError``
    for any other 4xx, and ``ProviderError`` for 5xx, transport failures
    and responses without content.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging and identification."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Current model name."""
        ...

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.2,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Run one system + user prompt exchange.

        Args:
            system_prompt: Role instruction.
            user_prompt: Request content.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate; the backend default when None.

        Returns:
            LLMResponse with non-empty content.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None


def raise_for_status(provider: str, status_code: int, detail: str = "") -> None:
    """Map an HTTP status to the error taxonomy. No-op for 2xx/3xx."""
    if status_code < 400:
        return
    message = f"{provider} returned HTTP {status_code}"
    if detail:
        message = f"{message}: {detail[:500]}"
    if status_code == 429:
        raise RateLimitError(
            message, provider=provider, status_code=status_code, code="rate_limited"
        )
    if status_code < 500:
        raise ConfigError(
            message, code="request_rejected", details={"provider": provider, "status": status_code}
        )
    raise ProviderError(message, provider=provider, status_code=status_code, code="server_error")


def transport_error(provider: str, exc: httpx.HTTPError | Exception) -> ProviderError:
    """Wrap a network failure as a retryable provider error."""
    timed_out = isinstance(exc, (httpx.TimeoutException, openai.APITimeoutError))
    kind = "timeout" if timed_out else "network_error"
    return ProviderError(f"{provider} request failed: {exc}", provider=provider, code=kind)
