"""
Gemini generateContent backend.

Single-endpoint protocol: one POST per request to
``{base_url}/{model}:generateContent`` with the prompt in ``contents``.
"""

from __future__ import annotations

import logging
import time

import httpx

from textweaver.exceptions import ProviderError
from textweaver.llm.base import LLMResponse, ProviderBackend, raise_for_status, transport_error

logger = logging.getLogger(__name__)


class GenerateContentBackend(ProviderBackend):
    """Gemini-style ``generateContent`` backend over httpx."""

    DEFAULT_MAX_TOKENS = 8192

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
        provider_name: str = "gemini",
    ):
        """
        Initialize the backend.

        Args:
            api_key: API key, sent as the ``key`` query parameter.
            model: Model name, e.g. ``gemini-2.0-flash``.
            base_url: Models endpoint root.
            timeout: Read timeout in seconds.
            http_client: Shared client; the backend owns (and closes) one it creates.
            provider_name: Name used in errors and logs.
        """
        self._api_key = api_key
        self._model_name = model
        self._base_url = base_url.rstrip("/")
        self._provider_name = provider_name
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect=10.0, write=60.0, read=timeout, pool=10.0)
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
        Call ``generateContent``.

        Args:
            system_prompt: Sent as ``systemInstruction`` when non-empty.
            user_prompt: Sent as the single user part.
            temperature: Sampling temperature.
            max_tokens: ``maxOutputTokens``; defaults to 8192.

        Returns:
            LLMResponse with the concatenated candidate text.
        """
        url = f"{self._base_url}/{self._model_name}:generateContent"
        body: dict = {
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": 40,
                "topP": 0.9,
                "maxOutputTokens": max_tokens or self.DEFAULT_MAX_TOKENS,
            },
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        logger.debug("Calling %s generateContent (%s)", self._provider_name, self._model_name)
        start_time = time.perf_counter()

        try:
            response = await self._client.post(url, params={"key": self._api_key}, json=body)
        except httpx.HTTPError as e:
            raise transport_error(self._provider_name, e) from e

        raise_for_status(self._provider_name, response.status_code, response.text)

        try:
            result = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self._provider_name} returned a non-JSON body",
                provider=self._provider_name,
                status_code=response.status_code,
                code="bad_response",
            ) from e

        content = self._extract_text(result)
        if not content.strip():
            raise ProviderError(
                f"{self._provider_name} returned no content",
                provider=self._provider_name,
                status_code=response.status_code,
                code="empty_response",
                details={"finish_reason": self._finish_reason(result)},
            )

        usage = result.get("usageMetadata") or {}
        prompt_tokens = usage.get("promptTokenCount", 0)
        completion_tokens = usage.get("candidatesTokenCount", 0)
        # Some responses only carry the total
        if completion_tokens == 0 and usage.get("totalTokenCount", 0) > prompt_tokens:
            completion_tokens = usage["totalTokenCount"] - prompt_tokens

        return LLMResponse(
            content=content.strip(),
            input_tokens=prompt_tokens,
            output_tokens=completion_tokens,
            model=self._model_name,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            metadata={
                "provider": self._provider_name,
                "finish_reason": self._finish_reason(result),
            },
        )

    @staticmethod
    def _extract_text(result: dict) -> str:
        candidates = result.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    @staticmethod
    def _finish_reason(result: dict) -> str | None:
        candidates = result.get("candidates") or []
        return candidates[0].get("finishReason") if candidates else None

    async def aclose(self) -> None:
        """Close the HTTP client if this backend created it."""
        if self._owns_client:
            await self._client.aclose()
