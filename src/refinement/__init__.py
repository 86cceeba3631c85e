"""
Refinement pipeline for turning short coding requests into actionable prompts.

This module provides:
- A content-addressed TTL/LRU cache of refined prompts
- Error classification with retry-with-backoff for transient failures
- Streaming with in-flight de-duplication of identical requests
- Token budget validation before any service call
- In-memory history and telemetry sinks

Usage:
    from src.refinement import RefinementConfig, RefinementPipeline

    async with RefinementPipeline.create(RefinementConfig()) as pipeline:
        result = await pipeline.refine("add dark mode")
        print(result.refined_prompt)
"""

from .cache import CacheStats, RequestCache
from .errors import ErrorClassification, ErrorKind, RefineryError, classify_error
from .history import RefinementHistory, RefinementHistoryEntry
from .models import (
    CancellationToken,
    PipelineState,
    RefinementConfig,
    RefinementObserver,
    RefinementOutcome,
    RefinementResult,
)
from .pipeline import RefinementPipeline
from .retry import RetryExecutor
from .streaming import StreamingOrchestrator
from .telemetry import TelemetryRecorder
from .templates import PROMPT_TEMPLATES, PromptTemplate, TemplateCategory
from .tokens import TokenValidationResult, estimate_tokens, validate_token_count

__all__ = [
    # Core
    "RefinementPipeline",
    "RefinementConfig",
    "RefinementResult",
    "RefinementOutcome",
    "PipelineState",
    "RefinementObserver",
    "CancellationToken",
    # Components
    "RequestCache",
    "CacheStats",
    "RetryExecutor",
    "StreamingOrchestrator",
    # Errors
    "ErrorKind",
    "ErrorClassification",
    "RefineryError",
    "classify_error",
    # Tokens
    "TokenValidationResult",
    "estimate_tokens",
    "validate_token_count",
    # Sinks
    "RefinementHistory",
    "RefinementHistoryEntry",
    "TelemetryRecorder",
    # Templates
    "PROMPT_TEMPLATES",
    "PromptTemplate",
    "TemplateCategory",
]
