"""
Chat completions backend.

Serves every OpenAI-compatible provider (OpenAI, Chutes, custom endpoints)
through the official ``openai`` client.
"""

from __future__ import annotations

import logging
import time

import httpx
import openai
from openai import AsyncOpenAI

from textweaver.exceptions import ProviderError
from textweaver.llm.base import LLMResponse, ProviderBackend, raise_for_status, transport_error

logger = logging.getLogger(__name__)


class ChatCompletionsBackend(ProviderBackend):
    """
    OpenAI-compatible ``/chat/completions`` backend.

    The client's own retries are disabled: retry policy belongs to the
    orchestrator, and 429s must surface as ``RateLimitError``.
    """

    DEFAULT_MAX_TOKENS = 4000

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
        provider_name: str = "openai",
    ):
        """
        Initialize the backend.

        Args:
            api_key: Bearer token.
            model: Model name.
            base_url: API root, e.g. ``https://api.openai.com/v1``.
            timeout: Request timeout in seconds.
            http_client: Optional httpx client handed to the openai client.
            provider_name: Name used in errors and logs.
        """
        self._model_name = model
        self._provider_name = provider_name
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    @property
    def name(self) -> str:
        """Provider name."""
        return self._provider_name

    @property
    def model(self) -> str:
        """Current model name."""
        return self._model_name

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.2,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Send a system + user chat completion.

        Args:
            system_prompt: System message content; omitted when empty.
            user_prompt: User message content.
            temperature: Sampling temperature.
            max_tokens: Maximum output tokens; defaults to 4000.

        Returns:
            LLMResponse with content and usage stats.
        """
        messages = [{"role": "user", "content": user_prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        logger.debug("Calling %s chat completions (%s)", self._provider_name, self._model_name)
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model_name,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens or self.DEFAULT_MAX_TOKENS,
            )
        except openai.APIStatusError as e:
            raise_for_status(self._provider_name, e.status_code, e.message)
            raise ProviderError(
                f"{self._provider_name} request failed: {e}", provider=self._provider_name
            ) from e
        except openai.APIConnectionError as e:
            raise transport_error(self._provider_name, e) from e
        except openai.APIError as e:
            raise ProviderError(
                f"{self._provider_name} returned an unusable response: {e}",
                provider=self._provider_name,
                code="bad_response",
            ) from e

        choices = response.choices or []
        content = (choices[0].message.content or "") if choices else ""
        if not content.strip():
            raise ProviderError(
                f"{self._provider_name} returned no content",
                provider=self._provider_name,
                code="empty_response",
                details={"finish_reason": choices[0].finish_reason if choices else None},
            )

        usage = response.usage
        return LLMResponse(
            content=content.strip(),
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model_name,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            metadata={
                "provider": self._provider_name,
                "finish_reason": choices[0].finish_reason,
            },
        )

    async def aclose(self) -> None:
        """Close the underlying client."""
        await self._client.close()
