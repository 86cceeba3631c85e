"""Anthropic (Claude) LLM provider implementation."""

import logging
import time
from typing import Any, AsyncIterator, Optional

import anthropic

from .base import (
    LLMProvider,
    LLMResponse,
    ProviderType,
    StreamChunk,
    TokenUsage,
)

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"


class AnthropicProvider(LLMProvider):
    """
    Anthropic (Claude) LLM provider.

    The SDK's own retries are disabled (``max_retries=0``); retry policy
    belongs to the caller.

    Usage:
        provider = AnthropicProvider(api_key="...")
        async with provider:
            response = await provider.complete("Hello!")
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_ANTHROPIC_MODEL,
        api_base_url: Optional[str] = None,
        timeout_seconds: float = 120.0,
        requests_per_minute: Optional[int] = 50,
        log_requests: bool = False,
        log_responses: bool = False,
    ):
        super().__init__(requests_per_minute=requests_per_minute)
        self._api_key = api_key
        self.default_model = default_model
        self.api_base_url = api_base_url
        self.timeout_seconds = timeout_seconds
        self.log_requests = log_requests
        self.log_responses = log_responses

        self._client: Optional[anthropic.AsyncAnthropic] = None

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.ANTHROPIC

    async def start(self) -> None:
        """Initialize the async client."""
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            base_url=self.api_base_url,
            timeout=self.timeout_seconds,
            max_retries=0,
        )
        self._started = True
        logger.info("Anthropic provider initialized")

    async def stop(self) -> None:
        """Close the client."""
        if self._client:
            await self._client.close()
            self._client = None
        self._started = False
        logger.info("Anthropic provider closed")

    def _ensure_client(self) -> anthropic.AsyncAnthropic:
        """Ensure client is initialized."""
        if self._client is None:
            raise RuntimeError(
                "Provider not initialized. Use 'async with provider' or call start()."
            )
        return self._client

    def _request_params(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        return {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }

    async def complete(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a completion request to Claude."""
        client = self._ensure_client()
        model = model or self.default_model
        request_params = self._request_params(prompt, model, max_tokens, temperature)
        request_params.update(kwargs)

        await self._apply_rate_limit()

        if self.log_requests:
            logger.debug(f"Anthropic Request: {request_params}")

        start_time = time.time()
        response = await client.messages.create(**request_params)
        latency_ms = (time.time() - start_time) * 1000

        content = "".join(
            block.text for block in response.content if block.type == "text"
        )

        if self.log_responses:
            logger.debug(f"Anthropic Response: {content[:200]}...")

        return LLMResponse(
            content=content,
            model=response.model,
            usage=TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
            stop_reason=response.stop_reason,
            latency_ms=latency_ms,
            provider=ProviderType.ANTHROPIC,
        )

    async def stream(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a completion response from Claude."""
        client = self._ensure_client()
        model = model or self.default_model
        request_params = self._request_params(prompt, model, max_tokens, temperature)
        request_params.update(kwargs)

        await self._apply_rate_limit()

        usage = TokenUsage()

        # Leaving the context manager closes the HTTP stream, including when
        # the consumer stops early.
        async with client.messages.stream(**request_params) as stream:
            async for event in stream:
                if event.type == "content_block_delta":
                    text = getattr(event.delta, "text", "")
                    if text:
                        yield StreamChunk(text=text)

                elif event.type == "message_delta":
                    if getattr(event, "usage", None):
                        usage.output_tokens = getattr(event.usage, "output_tokens", 0)

                elif event.type == "message_start":
                    if hasattr(event, "message") and hasattr(event.message, "usage"):
                        usage.input_tokens = event.message.usage.input_tokens

        yield StreamChunk(text="", is_final=True, usage=usage)
