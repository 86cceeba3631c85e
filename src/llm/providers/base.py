"""Base LLM provider interface and common types."""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Optional


class ProviderType(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


@dataclass
class TokenUsage:
    """Track token usage for a request."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Provider-agnostic response from an LLM call."""

    content: str
    model: str
    usage: TokenUsage
    stop_reason: Optional[str] = None
    latency_ms: float = 0.0
    provider: Optional[ProviderType] = None


@dataclass
class StreamChunk:
    """A chunk from a streaming response."""

    text: str
    is_final: bool = False
    usage: Optional[TokenUsage] = None


class LLMProvider(ABC):
    """
    Abstract base class for generative text services.

    Providers are bound to a single credential. Retries are not performed
    here; callers wrap ``complete`` in a RetryExecutor.

    Usage:
        provider = create_llm_provider(ProviderType.GEMINI, api_key="...")
        async with provider:
            response = await provider.complete("Hello, world!")
    """

    def __init__(self, requests_per_minute: Optional[int] = None):
        self.requests_per_minute = requests_per_minute
        self._started = False
        self._rate_limit_lock = asyncio.Lock()
        self._last_request_time: float = 0.0

    @property
    @abstractmethod
    def provider_type(self) -> ProviderType:
        """Return the provider type."""
        ...

    @property
    def is_started(self) -> bool:
        return self._started

    async def __aenter__(self) -> "LLMProvider":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.stop()

    @abstractmethod
    async def start(self) -> None:
        """Initialize the provider (create client connections, etc.)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Clean up provider resources."""
        ...

    async def _apply_rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        if self.requests_per_minute:
            min_interval = 60.0 / self.requests_per_minute
            async with self._rate_limit_lock:
                elapsed = time.time() - self._last_request_time
                if elapsed < min_interval:
                    await asyncio.sleep(min_interval - elapsed)
                self._last_request_time = time.time()

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Send a completion request to the LLM.

        Args:
            prompt: The full prompt text
            model: Model to use (defaults to the provider's default model)
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            **kwargs: Provider-specific arguments

        Returns:
            LLMResponse with content, usage, and metadata
        """
        ...

    @abstractmethod
    def stream(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream a completion response from the LLM.

        Yields:
            StreamChunk objects with incremental text, ending with a final
            chunk that carries usage
        """
        ...
