"""Tests for the streaming orchestrator."""

import asyncio
from contextlib import aclosing

import pytest

from src.llm import ClientFactory, LLMConfig
from src.refinement.errors import ErrorKind, RefineryError
from src.refinement.retry import RetryExecutor
from src.refinement.streaming import StreamingOrchestrator


@pytest.fixture
def orchestrator(provider_builder, fake_sleep):
    factory = ClientFactory(LLMConfig(), builder=provider_builder)
    return StreamingOrchestrator(
        factory,
        RetryExecutor(max_attempts=3, initial_delay_ms=10, sleep=fake_sleep),
        progress_interval=2,
    )


async def collect(stream):
    async with aclosing(stream) as fragments:
        return [fragment async for fragment in fragments]


class TestStream:
    """Tests for StreamingOrchestrator.stream."""

    @pytest.mark.asyncio
    async def test_yields_fragments_in_order(self, orchestrator, fake_provider):
        fake_provider.fragments = ["Implement ", "a dark mode ", "toggle."]

        fragments = await collect(orchestrator.stream("prompt", "key"))

        assert fragments == ["Implement ", "a dark mode ", "toggle."]
        assert fake_provider.stream_calls == 1
        assert fake_provider.stream_closed

    @pytest.mark.asyncio
    async def test_skips_empty_fragments(self, orchestrator, fake_provider):
        fake_provider.fragments = ["a", "", "b"]
        assert await collect(orchestrator.stream("prompt", "key")) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_progress_is_throttled(self, orchestrator, fake_provider):
        """Progress fires every ``progress_interval`` fragments."""
        fake_provider.fragments = ["ab", "cd", "ef", "gh", "ij"]
        progress = []

        await collect(orchestrator.stream("prompt", "key", on_progress=progress.append))

        assert progress == [4, 8]

    @pytest.mark.asyncio
    async def test_registered_while_streaming(self, orchestrator):
        """The fingerprint is in flight during iteration and released after."""
        seen = []
        async with aclosing(orchestrator.stream("prompt", "key", fingerprint="fp")) as fragments:
            async for _ in fragments:
                seen.append(orchestrator.is_in_flight("fp"))

        assert seen and all(seen)
        assert not orchestrator.is_in_flight("fp")
        assert orchestrator.in_flight_count == 0

    @pytest.mark.asyncio
    async def test_early_close_releases(self, orchestrator, fake_provider):
        """Stopping after one fragment closes the transport and the entry."""
        fake_provider.fragments = ["one", "two", "three"]

        async with aclosing(orchestrator.stream("prompt", "key", fingerprint="fp")) as fragments:
            async for _ in fragments:
                break

        assert fake_provider.stream_closed
        assert not orchestrator.is_in_flight("fp")

    @pytest.mark.asyncio
    async def test_mid_stream_error_is_classified(self, orchestrator, fake_provider):
        """Transport failures surface immediately, without retry."""
        fake_provider.fragments = ["one", "two", "three"]
        fake_provider.stream_error = Exception("fetch failed")
        received = []

        with pytest.raises(RefineryError) as exc_info:
            async with aclosing(orchestrator.stream("prompt", "key", fingerprint="fp")) as fragments:
                async for fragment in fragments:
                    received.append(fragment)

        assert exc_info.value.kind == ErrorKind.NETWORK
        assert received == ["one"]
        assert fake_provider.stream_calls == 1
        assert not orchestrator.is_in_flight("fp")

    @pytest.mark.asyncio
    async def test_fragment_timeout(self, orchestrator, fake_provider):
        """A fragment that never arrives times out as a network error."""
        fake_provider.gate = asyncio.Event()
        orchestrator.timeout_seconds = 0.01

        with pytest.raises(RefineryError) as exc_info:
            await collect(orchestrator.stream("prompt", "key", fingerprint="fp"))

        assert exc_info.value.kind == ErrorKind.NETWORK
        assert "timed out" in exc_info.value.message
        assert not orchestrator.is_in_flight("fp")


class TestJoin:
    """Tests for in-flight de-duplication."""

    @pytest.mark.asyncio
    async def test_join_receives_full_text(self, orchestrator, fake_provider):
        fake_provider.fragments = ["Hello ", "world"]
        fake_provider.gate = asyncio.Event()

        primary = asyncio.create_task(collect(orchestrator.stream("prompt", "key", fingerprint="fp")))
        await asyncio.sleep(0)
        assert orchestrator.is_in_flight("fp")

        joiner = asyncio.create_task(orchestrator.join("fp"))
        await asyncio.sleep(0)
        fake_provider.gate.set()

        assert await primary == ["Hello ", "world"]
        assert await joiner == "Hello world"
        assert fake_provider.stream_calls == 1

    @pytest.mark.asyncio
    async def test_join_nothing_in_flight(self, orchestrator):
        assert await orchestrator.join("missing") is None

    @pytest.mark.asyncio
    async def test_join_sees_failure(self, orchestrator, fake_provider):
        fake_provider.failures = [Exception("401 unauthorized")]
        fake_provider.gate = asyncio.Event()

        primary = asyncio.create_task(orchestrator.complete("prompt", "key", fingerprint="fp"))
        await asyncio.sleep(0)
        joiner = asyncio.create_task(orchestrator.join("fp"))
        await asyncio.sleep(0)
        fake_provider.gate.set()

        with pytest.raises(RefineryError):
            await primary
        with pytest.raises(RefineryError) as exc_info:
            await joiner
        assert exc_info.value.kind == ErrorKind.AUTH

    @pytest.mark.asyncio
    async def test_join_sees_cancellation(self, orchestrator, fake_provider):
        """Waiters get None when the primary stops early."""
        fake_provider.fragments = ["one", "two"]
        fake_provider.gate = asyncio.Event()

        async def consume_one():
            async with aclosing(orchestrator.stream("prompt", "key", fingerprint="fp")) as fragments:
                async for _ in fragments:
                    return

        primary = asyncio.create_task(consume_one())
        await asyncio.sleep(0)
        joiner = asyncio.create_task(orchestrator.join("fp"))
        await asyncio.sleep(0)
        fake_provider.gate.set()

        await primary
        assert await joiner is None
        assert not orchestrator.is_in_flight("fp")

    @pytest.mark.asyncio
    async def test_reset_releases_waiters(self, orchestrator, fake_provider):
        fake_provider.gate = asyncio.Event()
        primary = asyncio.create_task(collect(orchestrator.stream("prompt", "key", fingerprint="fp")))
        await asyncio.sleep(0)
        joiner = asyncio.create_task(orchestrator.join("fp"))
        await asyncio.sleep(0)

        orchestrator.reset()

        assert await joiner is None
        assert orchestrator.in_flight_count == 0
        fake_provider.gate.set()
        await primary


class TestComplete:
    """Tests for the request/response path."""

    @pytest.mark.asyncio
    async def test_complete_returns_text(self, orchestrator, fake_provider):
        fake_provider.fragments = ["Full ", "answer"]
        assert await orchestrator.complete("prompt", "key", fingerprint="fp") == "Full answer"
        assert not orchestrator.is_in_flight("fp")

    @pytest.mark.asyncio
    async def test_complete_retries_transient(self, orchestrator, fake_provider, recorded_sleeps):
        fake_provider.failures = [Exception("503 service unavailable")]
        retries = []

        text = await orchestrator.complete(
            "prompt", "key", on_retry=lambda *args: retries.append(args)
        )

        assert text == "Refined prompt."
        assert fake_provider.complete_calls == 2
        assert len(retries) == 1
        assert recorded_sleeps == [pytest.approx(0.01)]

    @pytest.mark.asyncio
    async def test_complete_timeout(self, orchestrator, fake_provider):
        fake_provider.gate = asyncio.Event()
        orchestrator.timeout_seconds = 0.01
        orchestrator.retry_executor.max_attempts = 1

        with pytest.raises(RefineryError) as exc_info:
            await orchestrator.complete("prompt", "key", fingerprint="fp")

        assert exc_info.value.kind == ErrorKind.NETWORK
        assert not orchestrator.is_in_flight("fp")
