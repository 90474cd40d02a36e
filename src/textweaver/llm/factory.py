"""
Backend factory.

Creates the backend matching a provider's wire protocol.
"""

from __future__ import annotations

import httpx

from textweaver.llm.base import ProviderBackend
from textweaver.llm.providers import ProviderConfig, WireProtocol


def create_backend(
    config: ProviderConfig,
    *,
    timeout: float = 120.0,
    http_client: httpx.AsyncClient | None = None,
) -> ProviderBackend:
    """
    Create a backend for a provider configuration.

    Args:
        config: Active provider configuration.
        timeout: Request timeout in seconds.
        http_client: Optional shared httpx client (tests pass one backed by
            ``httpx.MockTransport``).

    Returns:
        ProviderBackend instance.

    Raises:
        ConfigError: If the configuration is incomplete or unknown.

    Examples:
        backend = create_backend(ProviderConfig("gemini", api_key="..."))

        backend = create_backend(
            ProviderConfig(
                "custom",
                api_key="...",
                base_url="http://localhost:8000/v1",
                model="llama3",
            )
        )
    """
    config.validate()

    if config.spec.protocol == WireProtocol.GENERATE:
        from textweaver.llm.gemini import GenerateContentBackend

        return GenerateContentBackend(
            api_key=config.api_key,
            model=config.resolved_model,
            base_url=config.resolved_base_url,
            timeout=timeout,
            http_client=http_client,
            provider_name=config.provider,
        )

    from textweaver.llm.openai_compat import ChatCompletionsBackend

    return ChatCompletionsBackend(
        api_key=config.api_key,
        model=config.resolved_model,
        base_url=config.resolved_base_url,
        timeout=timeout,
        http_client=http_client,
        provider_name=config.provider,
    )
