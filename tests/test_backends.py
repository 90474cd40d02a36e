"""Tests for the generate and chat backends against mocked HTTP endpoints."""

import json

import httpx
import pytest

from textweaver.exceptions import ConfigError, ProviderError, RateLimitError
from textweaver.llm.factory import create_backend
from textweaver.llm.gemini import GenerateContentBackend
from textweaver.llm.openai_compat import ChatCompletionsBackend
from textweaver.llm.providers import ProviderConfig

GEMINI_BASE = "https://gemini.test/v1beta/models"
CHAT_BASE = "https://chat.test/v1"


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def gemini_body(text: str) -> dict:
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"}
        ],
        "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 4},
    }


def chat_body(text: str | None) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 20, "completion_tokens": 3, "total_tokens": 23},
    }


# ==================== generate ====================


@pytest.mark.asyncio
async def test_generate_request_shape_and_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_body("  Hola mundo  "))

    backend = GenerateContentBackend(
        "g-key", "gemini-test", GEMINI_BASE, http_client=mock_client(handler)
    )
    response = await backend.generate("Be a translator.", "Translate: Hello", temperature=0.3)

    assert seen["url"].path == "/v1beta/models/gemini-test:generateContent"
    assert seen["url"].params["key"] == "g-key"
    body = seen["body"]
    assert body["contents"] == [{"role": "user", "parts": [{"text": "Translate: Hello"}]}]
    assert body["systemInstruction"] == {"parts": [{"text": "Be a translator."}]}
    assert body["generationConfig"]["temperature"] == 0.3
    assert body["generationConfig"]["maxOutputTokens"] == 8192

    assert response.content == "Hola mundo"
    assert response.input_tokens == 12
    assert response.output_tokens == 4


@pytest.mark.asyncio
async def test_generate_omits_empty_system_prompt():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=gemini_body("es"))

    backend = GenerateContentBackend("k", "m", GEMINI_BASE, http_client=mock_client(handler))
    await backend.generate("", "Detect", max_tokens=20)

    assert "systemInstruction" not in bodies[0]
    assert bodies[0]["generationConfig"]["maxOutputTokens"] == 20


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_type", "code"),
    [
        (429, RateLimitError, "rate_limited"),
        (400, ConfigError, "request_rejected"),
        (403, ConfigError, "request_rejected"),
        (500, ProviderError, "server_error"),
        (503, ProviderError, "server_error"),
    ],
)
async def test_generate_maps_http_status(status, error_type, code):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"message": "nope"}})

    backend = GenerateContentBackend("k", "m", GEMINI_BASE, http_client=mock_client(handler))

    with pytest.raises(error_type) as exc_info:
        await backend.generate("s", "u")
    assert exc_info.value.code == code


@pytest.mark.asyncio
async def test_generate_empty_candidates_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    backend = GenerateContentBackend("k", "m", GEMINI_BASE, http_client=mock_client(handler))

    with pytest.raises(ProviderError) as exc_info:
        await backend.generate("s", "u")
    assert exc_info.value.code == "empty_response"


@pytest.mark.asyncio
async def test_generate_non_json_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    backend = GenerateContentBackend("k", "m", GEMINI_BASE, http_client=mock_client(handler))

    with pytest.raises(ProviderError) as exc_info:
        await backend.generate("s", "u")
    assert exc_info.value.code == "bad_response"


@pytest.mark.asyncio
async def test_generate_network_failure_is_retryable_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend = GenerateContentBackend("k", "m", GEMINI_BASE, http_client=mock_client(handler))

    with pytest.raises(ProviderError) as exc_info:
        await backend.generate("s", "u")
    assert not isinstance(exc_info.value, RateLimitError)
    assert exc_info.value.code == "network_error"


@pytest.mark.asyncio
async def test_generate_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    backend = GenerateContentBackend("k", "m", GEMINI_BASE, http_client=mock_client(handler))

    with pytest.raises(ProviderError) as exc_info:
        await backend.generate("s", "u")
    assert exc_info.value.code == "timeout"


# ==================== chat ====================


@pytest.mark.asyncio
async def test_chat_request_shape_and_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=chat_body(" Bonjour "))

    backend = ChatCompletionsBackend(
        "sk-chat", "test-model", CHAT_BASE, http_client=mock_client(handler)
    )
    response = await backend.generate("System text", "Translate: Hello", temperature=0.2)

    assert seen["url"] == f"{CHAT_BASE}/chat/completions"
    assert seen["auth"] == "Bearer sk-chat"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "System text"},
        {"role": "user", "content": "Translate: Hello"},
    ]
    assert seen["body"]["max_tokens"] == 4000
    assert response.content == "Bonjour"
    assert response.input_tokens == 20
    assert response.output_tokens == 3


@pytest.mark.asyncio
async def test_chat_omits_empty_system_message():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=chat_body("fr"))

    backend = ChatCompletionsBackend("k", "m", CHAT_BASE, http_client=mock_client(handler))
    await backend.generate("", "Detect")

    assert bodies[0]["messages"] == [{"role": "user", "content": "Detect"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_type", "code"),
    [
        (429, RateLimitError, "rate_limited"),
        (401, ConfigError, "request_rejected"),
        (404, ConfigError, "request_rejected"),
        (502, ProviderError, "server_error"),
    ],
)
async def test_chat_maps_http_status(status, error_type, code):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, json={"error": {"message": "nope"}})

    backend = ChatCompletionsBackend("k", "m", CHAT_BASE, http_client=mock_client(handler))

    with pytest.raises(error_type) as exc_info:
        await backend.generate("s", "u")
    assert exc_info.value.code == code
    # The openai client must not retry on its own
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_chat_empty_content_is_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=chat_body(""))

    backend = ChatCompletionsBackend("k", "m", CHAT_BASE, http_client=mock_client(handler))

    with pytest.raises(ProviderError) as exc_info:
        await backend.generate("s", "u")
    assert exc_info.value.code == "empty_response"


# ==================== factory ====================


def test_factory_picks_backend_by_protocol():
    gemini = create_backend(ProviderConfig("gemini", api_key="k"))
    chutes = create_backend(ProviderConfig("chutes", api_key="k"))

    assert isinstance(gemini, GenerateContentBackend)
    assert gemini.model == "gemini-2.0-flash"
    assert isinstance(chutes, ChatCompletionsBackend)
    assert chutes.name == "chutes"
    assert chutes.model == "deepseek-ai/DeepSeek-V3-0324"


def test_factory_rejects_incomplete_config():
    with pytest.raises(ConfigError):
        create_backend(ProviderConfig("custom", api_key="k", model="m"))
    with pytest.raises(ConfigError):
        create_backend(ProviderConfig("openai", api_key=""))
