"""Streaming and request/response calls with in-flight de-duplication."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Optional

from src.llm import ClientFactory, LLMProvider, StreamChunk

from .errors import ErrorKind, RefineryError, classify_error
from .retry import RetryCallback, RetryExecutor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class InFlightRequest:
    """A service call that other callers with the same fingerprint can await."""

    fingerprint: str
    started_at: float = field(default_factory=time.monotonic)
    done: asyncio.Event = field(default_factory=asyncio.Event)
    result: Optional[str] = None
    error: Optional[RefineryError] = None
    cancelled: bool = False
    waiters: int = 0


def _timeout_error(timeout_seconds: float) -> RefineryError:
    return RefineryError(
        f"Request timed out after {timeout_seconds:g}s",
        ErrorKind.NETWORK,
        retryable=True,
        suggested_action="Check your internet connection and try again.",
    )


class StreamingOrchestrator:
    """
    Wraps calls to the generation service.

    ``stream`` yields text fragments as the service produces them and is never
    retried; ``complete`` makes a single request/response call through the
    RetryExecutor. Both register the call under its fingerprint while it is
    pending so an identical request can ``join`` it instead of calling the
    service again. The registration is removed however the call settles.

    Usage:
        orchestrator = StreamingOrchestrator(ClientFactory(llm_config))
        async with contextlib.aclosing(
            orchestrator.stream(prompt, api_key, fingerprint=key)
        ) as fragments:
            async for fragment in fragments:
                print(fragment, end="")
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        retry_executor: Optional[RetryExecutor] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        progress_interval: int = 5,
        timeout_seconds: Optional[float] = None,
    ):
        self.client_factory = client_factory
        self.retry_executor = retry_executor or RetryExecutor()
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.progress_interval = max(1, progress_interval)
        self.timeout_seconds = timeout_seconds
        self._in_flight: dict[str, InFlightRequest] = {}

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, fingerprint: str) -> bool:
        return fingerprint in self._in_flight

    async def join(self, fingerprint: str) -> Optional[str]:
        """
        Wait for the in-flight call registered under ``fingerprint``.

        Returns:
            The full text produced by that call, or None if nothing is in
            flight or the call was cancelled

        Raises:
            RefineryError: If the in-flight call failed
        """
        entry = self._in_flight.get(fingerprint)
        if entry is None:
            return None

        entry.waiters += 1
        logger.debug(f"Joining in-flight request {fingerprint} ({entry.waiters} waiting)")
        await entry.done.wait()

        if entry.error is not None:
            raise entry.error
        return entry.result

    def reset(self) -> None:
        """Forget all in-flight registrations, releasing anyone waiting on them."""
        for entry in self._in_flight.values():
            entry.cancelled = True
            entry.done.set()
        self._in_flight.clear()

    def _register(self, fingerprint: Optional[str]) -> Optional[InFlightRequest]:
        if fingerprint is None:
            return None
        if fingerprint in self._in_flight:
            # A caller chose not to join; leave the existing registration alone.
            logger.debug(f"Request {fingerprint} already in flight, issuing untracked call")
            return None
        entry = InFlightRequest(fingerprint=fingerprint)
        self._in_flight[fingerprint] = entry
        logger.debug(f"Registered in-flight request {fingerprint}")
        return entry

    def _release(
        self,
        entry: Optional[InFlightRequest],
        result: Optional[str],
        error: Optional[RefineryError],
    ) -> None:
        if entry is None:
            return
        entry.result = result
        entry.error = error
        entry.cancelled = result is None and error is None
        entry.done.set()
        if self._in_flight.get(entry.fingerprint) is entry:
            del self._in_flight[entry.fingerprint]

        elapsed_ms = (time.monotonic() - entry.started_at) * 1000
        status = "failed" if error else "cancelled" if entry.cancelled else "completed"
        logger.debug(
            f"Released in-flight request {entry.fingerprint}: {status} "
            f"after {elapsed_ms:.0f}ms, {entry.waiters} waiter(s)"
        )

    async def _next_chunk(self, chunks: AsyncIterator[StreamChunk]) -> Optional[StreamChunk]:
        if self.timeout_seconds is None:
            return await anext(chunks, None)
        try:
            return await asyncio.wait_for(anext(chunks, None), self.timeout_seconds)
        except asyncio.TimeoutError:
            raise _timeout_error(self.timeout_seconds) from None

    async def stream(
        self,
        prompt: str,
        credential: str,
        *,
        fingerprint: Optional[str] = None,
        model: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a refinement as text fragments.

        The call is registered as in flight as soon as iteration starts, before
        the first suspension point. Closing the generator early cancels the
        call and releases the transport.

        Args:
            prompt: Full prompt to send
            credential: API key for the service
            fingerprint: Key under which identical requests can join this one
            model: Model override
            on_progress: Called with characters received every
                ``progress_interval`` fragments

        Yields:
            Non-empty text fragments in service order

        Raises:
            RefineryError: Classified service or timeout failure
        """
        entry = self._register(fingerprint)
        parts: list[str] = []
        finished = False
        error: Optional[RefineryError] = None
        try:
            provider = await self.client_factory.get(credential)
            chunks = provider.stream(
                prompt,
                model=model or self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            try:
                chars = 0
                count = 0
                while True:
                    chunk = await self._next_chunk(chunks)
                    if chunk is None:
                        break
                    if not chunk.text:
                        continue

                    count += 1
                    chars += len(chunk.text)
                    parts.append(chunk.text)
                    if on_progress and count % self.progress_interval == 0:
                        on_progress(chars)
                    yield chunk.text
            finally:
                await chunks.aclose()
            finished = True
        except RefineryError as e:
            error = e
            raise
        except Exception as e:
            error = classify_error(e)
            raise error from e
        finally:
            self._release(entry, "".join(parts) if finished else None, error)

    async def complete(
        self,
        prompt: str,
        credential: str,
        *,
        fingerprint: Optional[str] = None,
        model: Optional[str] = None,
        on_retry: Optional[RetryCallback] = None,
    ) -> str:
        """
        Make a request/response call, retrying transient failures.

        Raises:
            RefineryError: The last classified failure
        """
        entry = self._register(fingerprint)
        result: Optional[str] = None
        error: Optional[RefineryError] = None
        try:
            result = await self.retry_executor.execute(
                lambda: self._complete_once(prompt, credential, model),
                on_retry=on_retry,
            )
            return result
        except RefineryError as e:
            error = e
            raise
        finally:
            self._release(entry, result, error)

    async def _complete_once(self, prompt: str, credential: str, model: Optional[str]) -> str:
        provider: LLMProvider = await self.client_factory.get(credential)
        call = provider.complete(
            prompt,
            model=model or self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        if self.timeout_seconds is None:
            response = await call
        else:
            try:
                response = await asyncio.wait_for(call, self.timeout_seconds)
            except asyncio.TimeoutError:
                raise _timeout_error(self.timeout_seconds) from None
        return response.content
