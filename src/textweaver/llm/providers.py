"""
Provider catalog and the active provider configuration record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from textweaver.exceptions import ConfigError


class ProviderId(str, Enum):
    """Available translation providers."""

    GEMINI = "gemini"
    OPENAI = "openai"
    CHUTES = "chutes"
    CUSTOM = "custom"


class WireProtocol(str, Enum):
    """Request/response shape spoken by a provider."""

    GENERATE = "generate"
    CHAT = "chat"


@dataclass(frozen=True)
class ProviderSpec:
    """Static catalog entry for a provider."""

    id: ProviderId
    name: str
    protocol: WireProtocol
    base_url: str | None
    default_model: str | None
    requests_per_minute: int


PROVIDERS: dict[ProviderId, ProviderSpec] = {
    ProviderId.GEMINI: ProviderSpec(
        id=ProviderId.GEMINI,
        name="Google Gemini",
        protocol=WireProtocol.GENERATE,
        base_url="https://generativelanguage.googleapis.com/v1beta/models",
        default_model="gemini-2.0-flash",
        requests_per_minute=15,
    ),
    ProviderId.OPENAI: ProviderSpec(
        id=ProviderId.OPENAI,
        name="OpenAI",
        protocol=WireProtocol.CHAT,
        base_url="https://api.openai.com/v1",
        default_model="gpt-4o-mini",
        requests_per_minute=60,
    ),
    ProviderId.CHUTES: ProviderSpec(
        id=ProviderId.CHUTES,
        name="Chutes AI",
        protocol=WireProtocol.CHAT,
        base_url="https://llm.chutes.ai/v1",
        default_model="deepseek-ai/DeepSeek-V3-0324",
        requests_per_minute=30,
    ),
    ProviderId.CUSTOM: ProviderSpec(
        id=ProviderId.CUSTOM,
        name="Custom (OpenAI-compatible)",
        protocol=WireProtocol.CHAT,
        base_url=None,
        default_model=None,
        requests_per_minute=60,
    ),
}


def get_provider_spec(provider: ProviderId | str) -> ProviderSpec:
    """
    Look up a catalog entry.

    Raises:
        ConfigError: If the provider id is unknown.
    """
    try:
        return PROVIDERS[ProviderId(provider)]
    except ValueError:
        valid = [p.value for p in ProviderId]
        raise ConfigError(
            f"Unknown provider: {provider}. Valid options: {valid}",
            code="unknown_provider",
        ) from None


@dataclass(frozen=True)
class ProviderConfig:
    """The active provider: id, credentials and optional overrides."""

    provider: str
    api_key: str
    base_url: str | None = None
    model: str | None = None
    requests_per_minute: int | None = None

    @property
    def spec(self) -> ProviderSpec:
        return get_provider_spec(self.provider)

    @property
    def resolved_base_url(self) -> str:
        url = self.base_url or self.spec.base_url
        if not url:
            raise ConfigError(
                f"Provider '{self.provider}' requires a base URL", code="missing_base_url"
            )
        return url.rstrip("/")

    @property
    def resolved_model(self) -> str:
        model = self.model or self.spec.default_model
        if not model:
            raise ConfigError(f"Provider '{self.provider}' requires a model", code="missing_model")
        return model

    @property
    def resolved_rpm(self) -> int:
        return self.requests_per_minute or self.spec.requests_per_minute

    def validate(self) -> None:
        """
        Check that the configuration is usable.

        Raises:
            ConfigError: On an unknown provider, a missing API key, or a
                custom provider without base URL or model.
        """
        get_provider_spec(self.provider)
        if not self.api_key:
            raise ConfigError(
                f"No API key configured for provider '{self.provider}'", code="missing_api_key"
            )
        self.resolved_base_url
        self.resolved_model

    def masked_key(self) -> str:
        """API key safe for display."""
        if len(self.api_key) <= 8:
            return "*" * len(self.api_key)
        return f"{self.api_key[:4]}...{self.api_key[-4:]}"


class ConfigStore(Protocol):
    """Where the active provider configuration is kept."""

    def get_provider_config(self) -> ProviderConfig | None: ...

    def set_provider_config(self, config: ProviderConfig) -> None: ...

    def clear_provider_config(self) -> None: ...
