"""Google Gemini LLM provider implementation."""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Optional

from .base import (
    LLMProvider,
    LLMResponse,
    ProviderType,
    StreamChunk,
    TokenUsage,
)

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


def _usage_from(metadata: Any) -> TokenUsage:
    usage = TokenUsage()
    if metadata:
        usage.input_tokens = getattr(metadata, "prompt_token_count", 0) or 0
        usage.output_tokens = getattr(metadata, "candidates_token_count", 0) or 0
    return usage


class GeminiProvider(LLMProvider):
    """
    Google Gemini LLM provider.

    The google-generativeai SDK is synchronous, so calls run in a worker
    thread. Streaming pulls one chunk per thread hop, which keeps the event
    loop free and lets the consumer stop between chunks.

    Usage:
        provider = GeminiProvider(api_key="...", default_model="gemini-2.5-flash")
        async with provider:
            async for chunk in provider.stream("Hello!"):
                print(chunk.text, end="")
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_GEMINI_MODEL,
        timeout_seconds: float = 120.0,
        requests_per_minute: Optional[int] = 60,
        log_requests: bool = False,
        log_responses: bool = False,
    ):
        super().__init__(requests_per_minute=requests_per_minute)
        self._api_key = api_key
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds
        self.log_requests = log_requests
        self.log_responses = log_responses

        self._genai_module: Optional[Any] = None

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GEMINI

    async def start(self) -> None:
        """Initialize the Gemini client."""
        try:
            import google.generativeai as genai
            self._genai_module = genai
        except ImportError:
            raise ImportError(
                "google-generativeai package not installed. "
                "Install with: pip install google-generativeai"
            )

        self._genai_module.configure(api_key=self._api_key)
        self._started = True
        logger.info("Gemini provider initialized")

    async def stop(self) -> None:
        """Clean up resources."""
        self._genai_module = None
        self._started = False
        logger.info("Gemini provider closed")

    def _get_model(self, model: Optional[str] = None) -> Any:
        """Create a GenerativeModel instance."""
        if self._genai_module is None:
            raise RuntimeError(
                "Provider not initialized. Use 'async with provider' or call start()."
            )

        model_name = model or self.default_model

        # SDK adds the "models/" prefix itself
        if model_name.startswith("models/"):
            model_name = model_name[7:]

        return self._genai_module.GenerativeModel(model_name)

    async def complete(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a completion request to Gemini."""
        model_name = model or self.default_model
        generation_config = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }

        await self._apply_rate_limit()

        start_time = time.time()
        genai_model = self._get_model(model_name)

        if self.log_requests:
            logger.debug(f"Gemini Request: model={model_name}, prompt={prompt[:200]}...")

        response = await asyncio.to_thread(
            genai_model.generate_content,
            prompt,
            generation_config=generation_config,
            request_options={"timeout": self.timeout_seconds},
        )

        latency_ms = (time.time() - start_time) * 1000

        try:
            content = response.text
        except ValueError:
            # Response may be blocked or empty
            if response.prompt_feedback:
                logger.warning(f"Gemini response blocked: {response.prompt_feedback}")
            content = ""

        stop_reason = None
        if response.candidates:
            candidate = response.candidates[0]
            if hasattr(candidate, "finish_reason"):
                stop_reason = str(candidate.finish_reason)

        if self.log_responses:
            logger.debug(f"Gemini Response: {content[:200]}...")

        return LLMResponse(
            content=content,
            model=model_name,
            usage=_usage_from(getattr(response, "usage_metadata", None)),
            stop_reason=stop_reason,
            latency_ms=latency_ms,
            provider=ProviderType.GEMINI,
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
        """Stream a completion response from Gemini."""
        model_name = model or self.default_model
        generation_config = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }

        await self._apply_rate_limit()

        genai_model = self._get_model(model_name)

        if self.log_requests:
            logger.debug(f"Gemini Stream: model={model_name}, prompt={prompt[:200]}...")

        def stream_sync():
            return genai_model.generate_content(
                prompt,
                generation_config=generation_config,
                stream=True,
                request_options={"timeout": self.timeout_seconds},
            )

        response_stream = await asyncio.to_thread(stream_sync)
        chunks = iter(response_stream)

        usage = TokenUsage()
        while True:
            chunk = await asyncio.to_thread(next, chunks, None)
            if chunk is None:
                break

            try:
                text = chunk.text
            except ValueError:
                # Chunk may be empty or blocked
                text = ""
            if text:
                yield StreamChunk(text=text)

            if getattr(chunk, "usage_metadata", None):
                usage = _usage_from(chunk.usage_metadata)

        yield StreamChunk(text="", is_final=True, usage=usage)
