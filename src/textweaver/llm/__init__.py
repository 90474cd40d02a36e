"""
Provider gateway layer.

Supports two wire protocols behind one contract:
- generate: Gemini ``generateContent`` (httpx)
- chat: OpenAI-compatible chat completions (OpenAI, Chutes, custom endpoints)
"""

from textweaver.llm.base import LLMResponse, ProviderBackend
from textweaver.llm.factory import create_backend
from textweaver.llm.gateway import ProviderGateway
from textweaver.llm.prompts import TranslationOptions
from textweaver.llm.providers import PROVIDERS, ProviderConfig, ProviderId
from textweaver.llm.rate_limiter import RateLimiter, RateLimitStatus

__all__ = [
    "LLMResponse",
    "PROVIDERS",
    "ProviderBackend",
    "ProviderConfig",
    "ProviderGateway",
    "ProviderId",
    "RateLimitStatus",
    "RateLimiter",
    "TranslationOptions",
    "create_backend",
]
