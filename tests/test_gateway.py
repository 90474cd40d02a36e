"""Tests for the provider gateway."""

import httpx
import pytest

from textweaver.database import MemoryConfigStore
from textweaver.exceptions import ConfigError, ProviderError, RateLimitError
from textweaver.llm.factory import create_backend
from textweaver.llm.gateway import ProviderGateway
from textweaver.llm.prompts import SYSTEM_PROMPT, TranslationOptions
from textweaver.llm.providers import ProviderConfig


@pytest.mark.asyncio
async def test_translate_sends_system_and_translation_prompt(gateway, backend):
    result = await gateway.translate("Good morning.", "en", "es")

    assert result == "Spanish: Good morning."
    system_prompt, user_prompt = backend.calls[0]
    assert system_prompt == SYSTEM_PROMPT
    assert "from English to Spanish" in user_prompt


@pytest.mark.asyncio
async def test_translate_passes_options(gateway, backend):
    await gateway.translate(
        "x", "en", "fr", TranslationOptions(context_aware=True, project_name="Manual")
    )
    assert 'titled "Manual"' in backend.calls[0][1]


@pytest.mark.asyncio
async def test_not_configured_fails_before_any_request(backend, clock):
    gateway = ProviderGateway(
        MemoryConfigStore(), backend_factory=lambda config: backend, sleep=clock.sleep
    )

    with pytest.raises(ConfigError) as exc_info:
        await gateway.translate("Hello", "en", "es")

    assert exc_info.value.code == "not_configured"
    assert backend.calls == []
    assert not gateway.is_configured()


@pytest.mark.asyncio
async def test_missing_api_key_is_config_error(backend):
    store = MemoryConfigStore(ProviderConfig("gemini", api_key=""))
    gateway = ProviderGateway(store, backend_factory=lambda config: backend)

    with pytest.raises(ConfigError) as exc_info:
        await gateway.translate("Hello", "en", "es")
    assert exc_info.value.code == "missing_api_key"
    assert backend.calls == []


def test_set_provider_validates_and_persists():
    store = MemoryConfigStore()
    gateway = ProviderGateway(store)

    with pytest.raises(ConfigError):
        gateway.set_provider(ProviderConfig("custom", api_key="k"))
    assert store.get_provider_config() is None

    config = ProviderConfig("custom", api_key="k", base_url="http://localhost:8000/v1", model="m")
    gateway.set_provider(config)
    assert gateway.get_active_config() == config

    gateway.clear_provider()
    assert not gateway.is_configured()


def test_unknown_provider_is_rejected():
    gateway = ProviderGateway(MemoryConfigStore())
    with pytest.raises(ConfigError) as exc_info:
        gateway.set_provider(ProviderConfig("deepl", api_key="k"))
    assert exc_info.value.code == "unknown_provider"


@pytest.mark.asyncio
async def test_backend_rebuilt_when_config_changes(backend, clock):
    backend_cls = type(backend)
    built = []

    def factory(config):
        new_backend = backend_cls()
        built.append((config, new_backend))
        return new_backend

    store = MemoryConfigStore(ProviderConfig("openai", api_key="a", requests_per_minute=100))
    gateway = ProviderGateway(store, backend_factory=factory, clock=clock, sleep=clock.sleep)

    await gateway.translate("One.", "en", "es")
    await gateway.translate("Two.", "en", "es")
    assert len(built) == 1

    gateway.set_provider(ProviderConfig("chutes", api_key="b", requests_per_minute=100))
    await gateway.translate("Three.", "en", "es")
    assert len(built) == 2
    assert built[1][0].provider == "chutes"
    # The replaced backend is closed once nothing uses it
    assert built[0][1].closed
    assert not built[1][1].closed

    await gateway.aclose()
    assert all(b.closed for _, b in built)


@pytest.mark.asyncio
async def test_replaced_backend_stays_open_during_its_call(backend, clock):
    backend_cls = type(backend)
    store = MemoryConfigStore(ProviderConfig("openai", api_key="a", requests_per_minute=100))
    gateway = None
    closed_during_call = []

    async def switch_provider(count):
        gateway.set_provider(ProviderConfig("chutes", api_key="b", requests_per_minute=100))
        assert await gateway.translate("Two.", "en", "fr") == "French: Two."
        closed_during_call.append(first.closed)

    first = backend_cls(on_call=switch_provider)
    second = backend_cls()
    backends = iter([first, second])
    gateway = ProviderGateway(
        store, backend_factory=lambda config: next(backends), clock=clock, sleep=clock.sleep
    )

    assert await gateway.translate("One.", "en", "es") == "Spanish: One."

    assert closed_during_call == [False]
    assert first.closed
    assert not second.closed


@pytest.mark.asyncio
async def test_requests_share_the_provider_budget(backend, clock):
    store = MemoryConfigStore(ProviderConfig("openai", api_key="k", requests_per_minute=2))
    gateway = ProviderGateway(
        store, backend_factory=lambda config: backend, clock=clock, sleep=clock.sleep
    )

    await gateway.translate("A.", "en", "es")
    await gateway.translate("B.", "en", "es")
    assert clock.sleeps == []
    assert gateway.rate_limit_status().remaining == 0

    await gateway.translate("C.", "en", "es")
    assert clock.sleeps == [pytest.approx(60.0)]
    assert len(backend.calls) == 3


def test_rate_limit_status_unconfigured():
    assert ProviderGateway(MemoryConfigStore()).rate_limit_status() is None


@pytest.mark.asyncio
async def test_provider_errors_propagate(gateway, backend):
    backend.script = [RateLimitError("slow down", code="rate_limited")]
    with pytest.raises(RateLimitError):
        await gateway.translate("Hi", "en", "es")

    backend.script = [ProviderError("boom", code="server_error")]
    with pytest.raises(ProviderError):
        await gateway.translate("Hi", "en", "es")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("answer", "expected"),
    [
        ("es", "es"),
        ("  FR\n", "fr"),
        ("'de'", "de"),
        ("zh-tw.", "zh-tw"),
        ("The language is Spanish", "auto"),
        ("", "auto"),
    ],
)
async def test_detect_language_normalizes_answer(gateway, backend, answer, expected):
    backend.script = [answer or ProviderError("empty", code="empty_response")]
    assert await gateway.detect_language("Hola, ¿cómo estás?") == expected


@pytest.mark.asyncio
async def test_detect_language_never_raises(backend):
    gateway = ProviderGateway(MemoryConfigStore(), backend_factory=lambda config: backend)
    assert await gateway.detect_language("Bonjour") == "auto"
    assert await gateway.detect_language("   ") == "auto"
    assert backend.calls == []


@pytest.mark.asyncio
async def test_detect_language_uses_small_untemplated_request(gateway, backend):
    backend.script = ["en"]
    await gateway.detect_language("Hello there")
    system_prompt, user_prompt = backend.calls[0]
    assert system_prompt == ""
    assert user_prompt.startswith("Detect the language of the following text")


@pytest.mark.asyncio
async def test_gateway_over_gemini_wire(clock):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": "Hallo."}]}}]}
        )

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    store = MemoryConfigStore(ProviderConfig("gemini", api_key="g-key"))
    gateway = ProviderGateway(
        store,
        backend_factory=lambda config: create_backend(config, http_client=client),
        clock=clock,
        sleep=clock.sleep,
    )

    assert await gateway.translate("Hello.", "en", "de") == "Hallo."
    assert seen[0].url.host == "generativelanguage.googleapis.com"
    assert seen[0].url.path.endswith("/gemini-2.0-flash:generateContent")
    await client.aclose()


@pytest.mark.asyncio
async def test_gateway_over_chat_wire_maps_429(clock):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "Too many requests"}})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    store = MemoryConfigStore(
        ProviderConfig("custom", api_key="k", base_url="https://llm.test/v1", model="m")
    )
    gateway = ProviderGateway(
        store,
        backend_factory=lambda config: create_backend(config, http_client=client),
        clock=clock,
        sleep=clock.sleep,
    )

    with pytest.raises(RateLimitError):
        await gateway.translate("Hello.", "en", "de")
    await client.aclose()
