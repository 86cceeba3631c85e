"""Retry-with-backoff driver for non-streaming service calls."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .errors import RefineryError, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, RefineryError, int], None]


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, RefineryError) and error.retryable


class RetryExecutor:
    """
    Runs an async operation, retrying classified transient failures.

    The delay before retry ``n`` (1-indexed) is ``initial_delay_ms * 2**(n-1)``
    with no jitter. Non-retryable classifications are raised after the first
    failed attempt.

    Usage:
        executor = RetryExecutor(max_attempts=3, initial_delay_ms=500)
        text = await executor.execute(lambda: provider.complete(prompt))
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay_ms: int = 500,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
        on_retry: Optional[RetryCallback] = None,
    ) -> T:
        """
        Execute an operation with exponential backoff.

        Args:
            operation: Zero-argument coroutine function to attempt
            max_attempts: Total attempts including the first one
            initial_delay_ms: Delay before the first retry
            on_retry: Called with (attempt, error, delay_ms) before each wait

        Returns:
            The operation's result

        Raises:
            RefineryError: The last classified failure
        """
        attempts = max(1, max_attempts if max_attempts is not None else self.max_attempts)
        delay_ms = initial_delay_ms if initial_delay_ms is not None else self.initial_delay_ms

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            wait_ms = round(retry_state.next_action.sleep * 1000)
            logger.warning(
                f"Attempt {retry_state.attempt_number}/{attempts} failed "
                f"({error.kind.value}), retrying in {wait_ms}ms"
            )
            if on_retry:
                on_retry(retry_state.attempt_number, error, wait_ms)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=delay_ms / 1000, exp_base=2),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep,
            sleep=self._sleep,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                result = await self._attempt(operation)
        return result

    @staticmethod
    async def _attempt(operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        except RefineryError:
            raise
        except Exception as e:
            raise classify_error(e) from e
