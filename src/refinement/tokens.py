"""Token estimation heuristics for prompt budget checks."""

import math
import re
from typing import Optional

from pydantic import BaseModel

DEFAULT_TOKEN_LIMIT = 100_000

PUNCTUATION_PATTERN = re.compile(r"[.,!?;:'\"()\[\]{}]")


class TokenValidationResult(BaseModel):
    """Outcome of checking a prompt against the token budget."""

    is_valid: bool
    estimated_tokens: int
    max_tokens: int
    usage_percent: float
    warning: Optional[str] = None
    error: Optional[str] = None


def estimate_tokens(text: str) -> int:
    """
    Estimate the token count of a text.

    Uses ~1.3 tokens per whitespace-delimited word plus 0.5 per punctuation
    character, rounded up. Not exact, but stable enough for budget checks.
    """
    if not text or not text.strip():
        return 0

    words = len(text.split())
    punctuation = len(PUNCTUATION_PATTERN.findall(text))
    return math.ceil(words * 1.3 + punctuation * 0.5)


def format_token_count(tokens: int) -> str:
    """Format a token count for display (1500 -> "1.5k")."""
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.1f}M"
    if tokens >= 1000:
        return f"{tokens / 1000:.1f}k"
    return str(tokens)


def validate_token_count(
    text: str,
    max_tokens: int = DEFAULT_TOKEN_LIMIT,
    warning_threshold: float = 0.8,
) -> TokenValidationResult:
    """
    Validate that a prompt fits the token budget.

    Args:
        text: The fully assembled prompt
        max_tokens: Token ceiling
        warning_threshold: Fraction of the ceiling that triggers a warning

    Returns:
        TokenValidationResult; invalid at or above 100% usage
    """
    estimated = estimate_tokens(text)
    usage_percent = (estimated / max_tokens) * 100

    warning = None
    error = None
    is_valid = True

    if usage_percent >= 100:
        is_valid = False
        error = f"Prompt may be too long: ~{format_token_count(estimated)} tokens"
    elif usage_percent >= warning_threshold * 100:
        warning = f"Large prompt: ~{format_token_count(estimated)} tokens"

    return TokenValidationResult(
        is_valid=is_valid,
        estimated_tokens=estimated,
        max_tokens=max_tokens,
        usage_percent=usage_percent,
        warning=warning,
        error=error,
    )
