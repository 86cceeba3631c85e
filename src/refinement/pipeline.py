"""Refinement pipeline coordinating context, caching, streaming and sinks."""

import asyncio
import json
import logging
import time
from contextlib import aclosing
from typing import Any, Awaitable, Callable, Optional

from src.context.models import FileContext, ProjectContext
from src.llm import (
    ClientFactory,
    EnvSecretStore,
    LLMConfig,
    ProviderType,
    create_llm_provider,
    get_default_model,
)

from .cache import RequestCache
from .errors import ErrorKind, RefineryError, classify_error
from .history import RefinementHistory
from .models import (
    CancellationToken,
    ContextProvider,
    HistorySink,
    PipelineState,
    RefinementConfig,
    RefinementObserver,
    RefinementOutcome,
    RefinementResult,
    SecretStore,
    TelemetrySink,
)
from .prompts import build_prompt, separate_warning
from .retry import RetryExecutor
from .streaming import StreamingOrchestrator
from .telemetry import (
    CACHE_HIT,
    REFINEMENT_COMPLETE,
    REFINEMENT_DEDUPLICATED,
    TelemetryRecorder,
)
from .tokens import TokenValidationResult, validate_token_count

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0


def context_digest(project: Optional[ProjectContext]) -> str:
    """Serialize the context fields that belong in the fingerprint."""
    subset = project.fingerprint_subset() if project else {"project": None}
    return json.dumps(subset, sort_keys=True)


def _require_text(text: str) -> str:
    refined = text.strip()
    if not refined:
        raise RefineryError(
            "The service returned an empty response",
            ErrorKind.API_ERROR,
            retryable=True,
            suggested_action="Try again.",
        )
    return refined


class RefinementPipeline:
    """
    Turns a short request into a refined prompt.

    Each call moves through RECEIVED, CONTEXT_GATHERED and TOKEN_CHECKED,
    then either serves a cached result (CACHE_HIT, DONE) or calls the service
    (CACHE_MISS, STREAMING) and ends COMPLETED, CANCELLED or FAILED. Results
    are cached and reported to the history and telemetry sinks only after a
    complete, non-cancelled run.

    Usage:
        async with RefinementPipeline.create(RefinementConfig()) as pipeline:
            result = await pipeline.refine("add dark mode")
            print(result.refined_prompt)
    """

    def __init__(
        self,
        config: Optional[RefinementConfig] = None,
        *,
        cache: RequestCache,
        orchestrator: StreamingOrchestrator,
        llm_config: Optional[LLMConfig] = None,
        context_provider: Optional[ContextProvider] = None,
        secret_store: Optional[SecretStore] = None,
        history: Optional[HistorySink] = None,
        telemetry: Optional[TelemetrySink] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or RefinementConfig()
        self.cache = cache
        self.orchestrator = orchestrator
        self.llm_config = llm_config or orchestrator.client_factory.config
        self.context_provider = context_provider
        self.secret_store = secret_store or EnvSecretStore(self.llm_config)
        self.history = history
        self.telemetry = telemetry
        self._clock = clock

    @classmethod
    def create(
        cls,
        config: Optional[RefinementConfig] = None,
        *,
        llm_config: Optional[LLMConfig] = None,
        context_provider: Optional[ContextProvider] = None,
        secret_store: Optional[SecretStore] = None,
        history: Optional[HistorySink] = None,
        telemetry: Optional[TelemetrySink] = None,
        provider_builder: Callable[..., Any] = create_llm_provider,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> "RefinementPipeline":
        """
        Build a pipeline with its own cache, in-flight map and client factory.

        Args:
            config: Pipeline configuration
            llm_config: Service configuration; derived from ``config`` if omitted
            context_provider: Source of project and active-file context
            secret_store: Credential source; environment variables if omitted
            history: History sink; a new in-memory history if omitted
            telemetry: Telemetry sink; a new recorder if omitted
            provider_builder: Constructs provider clients (replaceable in tests)
            sleep: Backoff sleep (replaceable in tests)
            clock: Monotonic clock in seconds for cache ages and durations
        """
        config = config or RefinementConfig()
        if llm_config is None:
            model = config.model
            if config.provider != ProviderType.GEMINI and model.startswith("gemini"):
                model = get_default_model(config.provider)
            llm_config = LLMConfig(
                provider=config.provider,
                default_model=model,
                timeout_seconds=config.request_timeout_seconds or DEFAULT_TIMEOUT_SECONDS,
            )

        client_factory = ClientFactory(llm_config, builder=provider_builder)
        retry_executor = RetryExecutor(
            max_attempts=config.max_retries,
            initial_delay_ms=config.initial_retry_delay_ms,
            sleep=sleep,
        )
        orchestrator = StreamingOrchestrator(
            client_factory,
            retry_executor,
            model=llm_config.default_model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            progress_interval=config.progress_interval,
            timeout_seconds=config.request_timeout_seconds,
        )

        return cls(
            config,
            cache=RequestCache.from_config(config, clock=clock),
            orchestrator=orchestrator,
            llm_config=llm_config,
            context_provider=context_provider,
            secret_store=secret_store,
            history=history if history is not None else RefinementHistory(max_history=config.max_history),
            telemetry=telemetry if telemetry is not None else TelemetryRecorder(),
            clock=clock,
        )

    async def __aenter__(self) -> "RefinementPipeline":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    async def stop(self) -> None:
        """Close the service client."""
        await self.orchestrator.client_factory.invalidate()
        logger.info("RefinementPipeline stopped")

    async def reset(self) -> None:
        """Clear the cache and in-flight map and drop the service client."""
        self.cache.reset()
        self.orchestrator.reset()
        await self.orchestrator.client_factory.invalidate()
        logger.info("RefinementPipeline reset")

    def resolve_model(self, model_id: Optional[str] = None) -> str:
        return self.llm_config.resolve_model(model_id)

    async def refine(
        self,
        user_input: str,
        *,
        model_id: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
        observer: Optional[RefinementObserver] = None,
    ) -> RefinementResult:
        """
        Refine a request.

        Failures never raise; they come back as a FAILED result carrying the
        error kind, suggested action and retryable flag. Cancellation comes
        back as a CANCELLED result.

        Args:
            user_input: The raw request
            model_id: Model override; unknown ids fall back to the default
            cancellation: Token checked before context gathering, before the
                service call and at each streamed fragment
            observer: Hooks for state changes, fragments, progress, warnings
                and retries

        Returns:
            RefinementResult describing the outcome
        """
        run = _Run(
            pipeline=self,
            user_input=user_input,
            model=self.resolve_model(model_id),
            cancellation=cancellation or CancellationToken(),
            observer=observer or RefinementObserver(),
        )
        return await run.execute()

    def _emit(self, event_name: str, data: dict[str, Any]) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.record_event(event_name, data)
        except Exception as e:
            logger.warning(f"Telemetry sink failed on {event_name}: {e}")

    def _record_history(
        self,
        original: str,
        refined: str,
        model_id: str,
        framework: Optional[str],
    ) -> None:
        if self.history is None:
            return
        try:
            self.history.record_refinement(original, refined, model_id, framework)
        except Exception as e:
            logger.warning(f"History sink failed: {e}")


class _Run:
    """State for one pass through the pipeline."""

    def __init__(
        self,
        pipeline: RefinementPipeline,
        user_input: str,
        model: str,
        cancellation: CancellationToken,
        observer: RefinementObserver,
    ):
        self.pipeline = pipeline
        self.user_input = user_input
        self.model = model
        self.cancellation = cancellation
        self.observer = observer
        self.started_at = pipeline._clock()
        self.state = PipelineState.RECEIVED
        self.project: Optional[ProjectContext] = None
        self.active_file: Optional[FileContext] = None
        self.fingerprint: Optional[str] = None
        self.validation: Optional[TokenValidationResult] = None

    @property
    def framework(self) -> Optional[str]:
        return self.project.framework if self.project else None

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        logger.debug(f"[{self.fingerprint or '-'}] -> {state.value}")
        self.observer.on_state(state)

    def _duration_ms(self) -> float:
        return (self.pipeline._clock() - self.started_at) * 1000

    def _result(self, outcome: RefinementOutcome, refined: str = "", **kwargs: Any) -> RefinementResult:
        return RefinementResult(
            outcome=outcome,
            state=self.state,
            original_prompt=self.user_input,
            refined_prompt=refined,
            model=self.model,
            framework=self.framework,
            fingerprint=self.fingerprint,
            token_validation=self.validation,
            duration_ms=self._duration_ms(),
            **kwargs,
        )

    def _cancelled(self) -> RefinementResult:
        logger.info(f"Refinement cancelled in state {self.state.value}")
        self._enter(PipelineState.CANCELLED)
        return self._result(RefinementOutcome.CANCELLED)

    def _failed(self, error: RefineryError) -> RefinementResult:
        logger.error(f"Refinement failed ({error.kind.value}): {error.message}")
        self._enter(PipelineState.FAILED)
        return self._result(
            RefinementOutcome.FAILED,
            error_kind=error.kind,
            error_message=error.message,
            suggested_action=error.suggested_action,
            retryable=error.retryable,
            retry_after_ms=error.retry_after_ms,
        )

    def _finish(self, outcome: RefinementOutcome, refined: str) -> RefinementResult:
        warning, content = separate_warning(refined)
        return self._result(outcome, refined=content, vague_warning=warning)

    async def execute(self) -> RefinementResult:
        self._enter(PipelineState.RECEIVED)

        if not self.user_input or not self.user_input.strip():
            return self._failed(
                RefineryError(
                    "Empty request",
                    ErrorKind.INVALID_INPUT,
                    suggested_action="Describe what you want to build or fix.",
                )
            )

        if self.cancellation.is_cancelled:
            return self._cancelled()

        await self._gather_context()
        self._enter(PipelineState.CONTEXT_GATHERED)

        try:
            return await self._run()
        except RefineryError as e:
            return self._failed(e)
        except Exception as e:
            return self._failed(classify_error(e))

    async def _gather_context(self) -> None:
        provider = self.pipeline.context_provider
        if provider is None:
            return

        try:
            self.project = await provider.get_project_context()
        except Exception as e:
            logger.warning(f"Project context unavailable: {e}")

        if not self.pipeline.config.include_file_context:
            return
        try:
            self.active_file = await provider.get_active_file_context()
        except Exception as e:
            logger.warning(f"Active file context unavailable: {e}")

    async def _run(self) -> RefinementResult:
        pipeline = self.pipeline
        config = pipeline.config

        prompt = build_prompt(self.user_input, self.project, self.active_file)
        self.validation = validate_token_count(
            prompt,
            max_tokens=config.max_prompt_tokens,
            warning_threshold=config.token_warning_threshold,
        )
        if not self.validation.is_valid:
            raise RefineryError(
                self.validation.error or "Prompt too long",
                ErrorKind.TOKEN_OVERFLOW,
                suggested_action="Shorten your prompt and try again.",
            )
        if self.validation.warning:
            logger.warning(self.validation.warning)
            self.observer.on_warning(self.validation.warning)
        self._enter(PipelineState.TOKEN_CHECKED)

        self.fingerprint = pipeline.cache.hash(self.user_input, self.model, context_digest(self.project))

        cached = pipeline.cache.get(self.fingerprint)
        if cached is not None:
            self._enter(PipelineState.CACHE_HIT)
            pipeline._emit(CACHE_HIT, {"fingerprint": self.fingerprint[:8], "model": self.model})
            self.observer.on_fragment(cached)
            self._enter(PipelineState.DONE)
            return self._finish(RefinementOutcome.CACHED, cached)
        self._enter(PipelineState.CACHE_MISS)

        credential = pipeline.secret_store.get()
        if not credential:
            raise RefineryError(
                "No API key configured",
                ErrorKind.AUTH,
                suggested_action="Set an API key and try again.",
            )

        if self.cancellation.is_cancelled:
            return self._cancelled()

        shared = await self._join_in_flight()
        if shared is not None:
            return shared
        if self.cancellation.is_cancelled:
            return self._cancelled()

        # No suspension point between the in-flight check above and the
        # service call registering itself below.
        self._enter(PipelineState.STREAMING)
        if config.streaming:
            text = await self._stream(prompt, credential)
        else:
            text = await pipeline.orchestrator.complete(
                prompt,
                credential,
                fingerprint=self.fingerprint,
                model=self.model,
                on_retry=self.observer.on_retry,
            )
            if not self.cancellation.is_cancelled:
                self.observer.on_fragment(text)

        if text is None or self.cancellation.is_cancelled:
            return self._cancelled()

        refined = _require_text(text)
        pipeline.cache.set(self.fingerprint, refined, self.model, len(self.user_input))

        warning, content = separate_warning(refined)
        pipeline._record_history(self.user_input, content, self.model, self.framework)
        pipeline._emit(
            REFINEMENT_COMPLETE,
            {
                "duration": round(self._duration_ms()),
                "input_length": len(self.user_input),
                "output_length": len(refined),
                "model": self.model,
            },
        )
        self._enter(PipelineState.COMPLETED)
        return self._result(RefinementOutcome.COMPLETED, refined=content, vague_warning=warning)

    async def _join_in_flight(self) -> Optional[RefinementResult]:
        """Wait on an identical in-flight request, if there is one."""
        orchestrator = self.pipeline.orchestrator
        while orchestrator.is_in_flight(self.fingerprint):
            logger.info(f"Request {self.fingerprint} already in flight, waiting for it")
            text = await orchestrator.join(self.fingerprint)
            if self.cancellation.is_cancelled:
                return self._cancelled()
            if text is None:
                # The other request was cancelled; another caller may have
                # taken over in the meantime.
                continue

            refined = _require_text(text)
            self.observer.on_fragment(refined)
            self.pipeline._emit(
                REFINEMENT_DEDUPLICATED,
                {"fingerprint": self.fingerprint[:8], "model": self.model},
            )
            self._enter(PipelineState.COMPLETED)
            return self._finish(RefinementOutcome.SHARED, refined)
        return None

    async def _stream(self, prompt: str, credential: str) -> Optional[str]:
        """Forward fragments to the observer; None if cancelled mid-stream."""
        parts: list[str] = []
        fragments = self.pipeline.orchestrator.stream(
            prompt,
            credential,
            fingerprint=self.fingerprint,
            model=self.model,
            on_progress=self.observer.on_progress,
        )
        async with aclosing(fragments) as stream:
            async for fragment in stream:
                if self.cancellation.is_cancelled:
                    return None
                parts.append(fragment)
                self.observer.on_fragment(fragment)
        return "".join(parts)
