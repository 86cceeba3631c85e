"""Shared fixtures: a scripted provider and a controllable clock."""

import asyncio
from typing import Any, AsyncIterator, Optional

import pytest

from src.llm import LLMProvider, LLMResponse, ProviderType, StreamChunk, TokenUsage


class FakeProvider(LLMProvider):
    """Provider that replays scripted fragments or failures."""

    def __init__(
        self,
        fragments: Optional[list[str]] = None,
        failures: Optional[list[Exception]] = None,
        stream_error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        super().__init__()
        self.fragments = fragments if fragments is not None else ["Refined ", "prompt."]
        self.failures = list(failures or [])
        self.stream_error = stream_error
        self.gate = gate
        self.complete_calls = 0
        self.stream_calls = 0
        self.stream_closed = False
        self.prompts: list[str] = []

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GEMINI

    async def start(self) -> None:
        self._started = True

    async def stop(self) -> None:
        self._started = False

    async def complete(self, prompt: str, *, model: Optional[str] = None, **kwargs: Any) -> LLMResponse:
        self.complete_calls += 1
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)
        return LLMResponse(
            content="".join(self.fragments),
            model=model or "fake-model",
            usage=TokenUsage(input_tokens=10, output_tokens=5),
        )

    async def stream(self, prompt: str, *, model: Optional[str] = None, **kwargs: Any) -> AsyncIterator[StreamChunk]:
        self.stream_calls += 1
        self.prompts.append(prompt)
        try:
            for i, fragment in enumerate(self.fragments):
                if self.gate is not None:
                    await self.gate.wait()
                else:
                    await asyncio.sleep(0)
                if self.stream_error is not None and i == 1:
                    raise self.stream_error
                yield StreamChunk(text=fragment)
            yield StreamChunk(text="", is_final=True, usage=TokenUsage(10, 5))
        finally:
            self.stream_closed = True


class FakeClock:
    """Monotonic clock in seconds that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticSecretStore:
    def __init__(self, credential: Optional[str] = "test-key"):
        self.credential = credential

    def get(self) -> Optional[str]:
        return self.credential


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_builder(fake_provider):
    """Builder for ClientFactory that always hands out ``fake_provider``."""
    calls: list[dict[str, Any]] = []

    def build(provider, api_key, default_model=None, **kwargs):
        calls.append({"provider": provider, "api_key": api_key, "default_model": default_model, **kwargs})
        return fake_provider

    build.calls = calls
    return build


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def secret_store() -> StaticSecretStore:
    return StaticSecretStore()


@pytest.fixture
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    async def sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    return sleep
