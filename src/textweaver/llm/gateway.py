"""
Provider gateway.

The single entry point the orchestrator and the quality estimator use to
reach a translation provider. It resolves the active configuration, applies
the per-provider request budget and dispatches to the matching backend.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from functools import partial

from textweaver.exceptions import ConfigError, ProviderError
from textweaver.llm.base import ProviderBackend
from textweaver.llm.factory import create_backend
from textweaver.llm.prompts import (
    SYSTEM_PROMPT,
    TranslationOptions,
    build_detection_prompt,
    build_translation_prompt,
)
from textweaver.llm.providers import ConfigStore, ProviderConfig
from textweaver.llm.rate_limiter import RateLimiter, RateLimitStatus

logger = logging.getLogger(__name__)

__all__ = ["ProviderGateway", "TranslationOptions"]

_LANGUAGE_CODE_RE = re.compile(r"[a-z]{2,3}(?:-[a-z]{2,4})?")


class ProviderGateway:
    """
    Translation gateway over the active provider.

    One gateway is meant to serve the whole process: every project that
    translates through it shares one rate limiter per provider id.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        *,
        backend_factory: Callable[[ProviderConfig], ProviderBackend] | None = None,
        timeout: float = 120.0,
        temperature: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the gateway.

        Args:
            config_store: Holds the active provider configuration.
            backend_factory: Builds a backend for a configuration.
            timeout: Request timeout in seconds for backends built by default.
            temperature: Sampling temperature for translation requests.
            clock: Monotonic clock for the rate limiters.
            sleep: Async sleep used by the rate limiters.
        """
        self._store = config_store
        self._backend_factory = backend_factory or partial(create_backend, timeout=timeout)
        self._temperature = temperature
        self._clock = clock
        self._sleep = sleep
        self._limiters: dict[str, RateLimiter] = {}
        self._backend: ProviderBackend | None = None
        self._backend_config: ProviderConfig | None = None
        self._retired: list[ProviderBackend] = []
        self._in_flight: dict[ProviderBackend, int] = {}

    # ==================== Configuration ====================

    def set_provider(self, config: ProviderConfig) -> None:
        """
        Validate and persist a new active configuration.

        Chunk data is never touched, so switching providers between runs
        keeps completed translations.

        Raises:
            ConfigError: If the configuration is unusable.
        """
        config.validate()
        self._store.set_provider_config(config)
        logger.info("Active provider set to %s (%s)", config.provider, config.resolved_model)

    def get_active_config(self) -> ProviderConfig:
        """
        Get the active configuration.

        Raises:
            ConfigError: If no provider is configured or it is incomplete.
        """
        config = self._store.get_provider_config()
        if config is None:
            raise ConfigError("No translation provider configured", code="not_configured")
        config.validate()
        return config

    def clear_provider(self) -> None:
        """Forget the active configuration."""
        self._store.clear_provider_config()

    def is_configured(self) -> bool:
        try:
            self.get_active_config()
        except ConfigError:
            return False
        return True

    # ==================== Requests ====================

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        options: TranslationOptions | None = None,
    ) -> str:
        """
        Translate one chunk.

        Args:
            text: Chunk text.
            source_lang: Source language code or "auto".
            target_lang: Target language code.
            options: Style, formatting and context settings.

        Returns:
            Translated text, stripped and non-empty.

        Raises:
            ConfigError: Not configured (raised before any network attempt),
                or the provider rejected the request.
            RateLimitError: The provider answered 429.
            ProviderError: Transport failure, server error or empty content.
        """
        options = options or TranslationOptions()
        prompt = build_translation_prompt(text, source_lang, target_lang, options)
        content = await self._request(SYSTEM_PROMPT, prompt, temperature=self._temperature)
        if not content:
            raise ProviderError("Provider returned an empty translation", code="empty_response")
        return content

    async def detect_language(self, text: str) -> str:
        """
        Detect the language of a text sample.

        Returns:
            A short lowercase language code, or "auto" on any failure.
        """
        if not text.strip():
            return "auto"
        try:
            answer = await self._request(
                "", build_detection_prompt(text), temperature=0.0, max_tokens=20
            )
        except Exception as e:
            logger.warning("Language detection failed: %s", e)
            return "auto"

        code = answer.strip().lower().strip("'\"`.")
        return code if _LANGUAGE_CODE_RE.fullmatch(code) else "auto"

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float = 0.2,
        max_tokens: int | None = None,
    ) -> str:
        """Send a raw single-prompt request and return the text."""
        return await self._request("", prompt, temperature=temperature, max_tokens=max_tokens)

    async def _request(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int | None = None,
    ) -> str:
        config = self.get_active_config()
        backend = self._get_backend(config)
        await self._get_limiter(config).acquire()
        self._in_flight[backend] = self._in_flight.get(backend, 0) + 1
        try:
            response = await backend.generate(
                system_prompt, user_prompt, temperature=temperature, max_tokens=max_tokens
            )
        finally:
            self._in_flight[backend] -= 1
            if not self._in_flight[backend]:
                del self._in_flight[backend]
            await self._close_retired()
        return response.content.strip()

    # ==================== Backends and limits ====================

    def _get_backend(self, config: ProviderConfig) -> ProviderBackend:
        if self._backend is None or self._backend_config != config:
            if self._backend is not None:
                logger.debug("Provider configuration changed, rebuilding backend")
                # The old backend's in-flight calls may still hold its client
                self._retired.append(self._backend)
            self._backend = self._backend_factory(config)
            self._backend_config = config
        return self._backend

    async def _close_retired(self) -> None:
        """Close replaced backends that no call is using any more."""
        idle = [
            b for b in self._retired if b not in self._in_flight and b is not self._backend
        ]
        if not idle:
            return
        self._retired = [b for b in self._retired if b not in idle]
        for backend in idle:
            await backend.aclose()

    def _get_limiter(self, config: ProviderConfig) -> RateLimiter:
        limiter = self._limiters.get(config.provider)
        if limiter is None or limiter.requests_per_minute != config.resolved_rpm:
            limiter = RateLimiter(config.resolved_rpm, clock=self._clock, sleep=self._sleep)
            self._limiters[config.provider] = limiter
        return limiter

    def rate_limit_status(self) -> RateLimitStatus | None:
        """Budget of the active provider, or None when not configured."""
        try:
            config = self.get_active_config()
        except ConfigError:
            return None
        return self._get_limiter(config).status()

    async def aclose(self) -> None:
        """Close every backend this gateway created."""
        backends = list(self._retired)
        if self._backend is not None:
            backends.append(self._backend)
        for backend in backends:
            await backend.aclose()
        self._retired = []
        self._backend = None
        self._backend_config = None
