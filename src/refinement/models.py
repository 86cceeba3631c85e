"""Data models for the refinement pipeline."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol

from pydantic import BaseModel, Field

from src.context.models import FileContext, ProjectContext
from src.llm import DEFAULT_MODEL, ProviderType

from .errors import ErrorKind, RefineryError
from .tokens import DEFAULT_TOKEN_LIMIT, TokenValidationResult


class PipelineState(str, Enum):
    """States a single refinement request moves through."""

    RECEIVED = "received"
    CONTEXT_GATHERED = "context_gathered"
    TOKEN_CHECKED = "token_checked"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    STREAMING = "streaming"
    # Terminal
    DONE = "done"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class RefinementOutcome(str, Enum):
    """How a refinement request finished."""

    COMPLETED = "completed"  # Fresh result from the service
    CACHED = "cached"  # Served from the request cache
    SHARED = "shared"  # Joined an identical in-flight request
    CANCELLED = "cancelled"
    FAILED = "failed"


class RefinementConfig(BaseModel):
    """Configuration for the refinement pipeline."""

    # Provider settings
    provider: ProviderType = Field(
        default=ProviderType.GEMINI,
        description="LLM provider to use",
    )
    model: str = Field(
        default=DEFAULT_MODEL.value,
        description="Model to use for refinements",
    )

    # Generation settings
    max_tokens: int = Field(
        default=4096,
        description="Maximum tokens for LLM responses",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )

    # Cache settings
    cache_max_size: int = Field(
        default=50,
        ge=1,
        description="Maximum cached refinements",
    )
    cache_ttl_ms: int = Field(
        default=3_600_000,
        ge=1,
        description="Cache entry time-to-live in milliseconds",
    )

    # Token budget
    token_warning_threshold: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Usage fraction above which a warning is surfaced",
    )
    max_prompt_tokens: int = Field(
        default=DEFAULT_TOKEN_LIMIT,
        ge=1,
        description="Estimated prompt token ceiling",
    )

    # Retry settings
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Maximum attempts for non-streaming calls",
    )
    initial_retry_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Backoff delay before the first retry",
    )

    # Streaming settings
    streaming: bool = True
    progress_interval: int = Field(
        default=5,
        ge=1,
        description="Report progress every N fragments",
    )
    request_timeout_seconds: Optional[float] = Field(
        default=120.0,
        gt=0.0,
        description="Timeout for a service call or for each streamed fragment; None disables",
    )

    # Context settings
    include_file_context: bool = True

    # History settings
    max_history: int = Field(
        default=50,
        ge=1,
        description="Maximum history entries to keep",
    )


class CancellationToken:
    """Cooperative cancellation flag checked at pipeline suspension points."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled


class RefinementObserver:
    """
    Callback hooks for a single pipeline call.

    Subclass and override the hooks you need; the defaults do nothing.
    """

    def on_state(self, state: PipelineState) -> None:
        pass

    def on_fragment(self, fragment: str) -> None:
        pass

    def on_progress(self, chars_so_far: int) -> None:
        pass

    def on_warning(self, message: str) -> None:
        pass

    def on_retry(self, attempt: int, error: RefineryError, delay_ms: int) -> None:
        pass


class RefinementResult(BaseModel):
    """Result of a refinement request."""

    outcome: RefinementOutcome
    state: PipelineState

    original_prompt: str
    refined_prompt: str = ""
    vague_warning: Optional[str] = None
    model: str = ""
    framework: Optional[str] = None
    fingerprint: Optional[str] = None
    token_validation: Optional[TokenValidationResult] = None

    # Failure details
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    suggested_action: Optional[str] = None
    retryable: bool = False
    retry_after_ms: Optional[int] = None

    duration_ms: float = 0.0
    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def success(self) -> bool:
        return self.outcome in (
            RefinementOutcome.COMPLETED,
            RefinementOutcome.CACHED,
            RefinementOutcome.SHARED,
        )


# Collaborator interfaces


class ContextProvider(Protocol):
    async def get_project_context(self) -> Optional[ProjectContext]: ...

    async def get_active_file_context(self) -> Optional[FileContext]: ...


class SecretStore(Protocol):
    def get(self) -> Optional[str]: ...


class HistorySink(Protocol):
    def record_refinement(
        self,
        original: str,
        refined: str,
        model_id: str,
        framework: Optional[str] = None,
    ) -> Any: ...


class TelemetrySink(Protocol):
    def record_event(self, event_name: str, data: Optional[dict[str, Any]] = None) -> None: ...
