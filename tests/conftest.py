"""Shared fixtures: a scratch DuckDB store and a scriptable provider backend."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable

import pytest

from textweaver.database import Database, MemoryConfigStore
from textweaver.llm.base import LLMResponse, ProviderBackend
from textweaver.llm.gateway import ProviderGateway
from textweaver.llm.providers import ProviderConfig

_TARGET_RE = re.compile(r"^Translate the following text from .+ to (.+)\.$", re.MULTILINE)
_TEXT_RE = re.compile(r'TEXT TO TRANSLATE:\n"""\n(.*)\n"""', re.DOTALL)


def fake_translate(prompt: str) -> str:
    """Answer a translation prompt with ``"<Target name>: <text>"``."""
    target = _TARGET_RE.search(prompt)
    text = _TEXT_RE.search(prompt)
    if not target or not text:
        return "ok"
    return f"{target.group(1)}: {text.group(1)}"


class FakeBackend(ProviderBackend):
    """
    In-memory backend.

    ``script`` items are consumed one per call: strings are returned as the
    answer, exceptions are raised. Once empty, translation prompts are
    answered by ``fake_translate``.
    """

    def __init__(
        self,
        script: list | None = None,
        on_call: Callable[[int], Awaitable[None]] | None = None,
    ):
        self.script = list(script or [])
        self.on_call = on_call
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-model"

    async def generate(self, system_prompt, user_prompt, *, temperature=0.2, max_tokens=None):
        self.calls.append((system_prompt, user_prompt))
        if self.on_call is not None:
            await self.on_call(len(self.calls))
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            return LLMResponse(content=item, model=self.model)
        return LLMResponse(content=fake_translate(user_prompt), model=self.model)

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Manual monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "test.duckdb")
    yield database
    database.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def provider_config():
    return ProviderConfig(provider="openai", api_key="sk-test-1234567890", requests_per_minute=1000)


@pytest.fixture
def gateway(backend, provider_config, clock):
    return ProviderGateway(
        MemoryConfigStore(provider_config),
        backend_factory=lambda config: backend,
        clock=clock,
        sleep=clock.sleep,
    )
