"""Error taxonomy and classification for refinement requests."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds a caller can branch on."""

    AUTH = "AUTH"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK = "NETWORK"
    TOKEN_OVERFLOW = "TOKEN_OVERFLOW"
    INVALID_INPUT = "INVALID_INPUT"
    API_ERROR = "API_ERROR"
    UNKNOWN = "UNKNOWN"


DEFAULT_RETRY_AFTER_MS = 60_000

AUTH_SIGNALS = (
    "api key",
    "unauthorized",
    "401",
    "invalid key",
    "invalid credential",
    "permission denied",
)
RATE_LIMIT_SIGNALS = (
    "rate limit",
    "429",
    "quota",
    "too many requests",
    "resource has been exhausted",
)
NETWORK_SIGNALS = (
    "network",
    "timeout",
    "timed out",
    "econnrefused",
    "connection refused",
    "enotfound",
    "name or service not known",
    "getaddrinfo",
    "dns",
    "fetch failed",
    "failed to fetch",
)
TOKEN_SIGNALS = (
    "token",
    "context length",
    "too long",
    "maximum",
)
SERVER_SIGNALS = (
    "500",
    "502",
    "503",
    "504",
    "bad gateway",
    "internal server error",
    "service unavailable",
)

RETRY_HINT_PATTERN = re.compile(r"(\d+)\s*(second|minute|sec|min)", re.IGNORECASE)

USER_MESSAGES = {
    ErrorKind.AUTH: "Authentication Error: your API key is invalid or expired.",
    ErrorKind.NETWORK: "Network Error: could not reach the generation service.",
    ErrorKind.TOKEN_OVERFLOW: "Prompt Too Large: your input exceeds the token limit.",
    ErrorKind.INVALID_INPUT: "Invalid Input: please provide a request to refine.",
    ErrorKind.API_ERROR: "API Error: the service returned an unexpected error.",
    ErrorKind.UNKNOWN: "Error: something went wrong.",
}


@dataclass(frozen=True)
class ErrorClassification:
    """Retry-aware interpretation of a raw failure."""

    kind: ErrorKind
    retryable: bool
    suggested_action: str
    retry_after_ms: Optional[int] = None


class RefineryError(Exception):
    """A classified failure raised from the refinement core."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        retryable: bool = False,
        suggested_action: str = "",
        retry_after_ms: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.classification = ErrorClassification(
            kind=kind,
            retryable=retryable,
            suggested_action=suggested_action,
            retry_after_ms=retry_after_ms,
        )

    @property
    def kind(self) -> ErrorKind:
        return self.classification.kind

    @property
    def retryable(self) -> bool:
        return self.classification.retryable

    @property
    def suggested_action(self) -> str:
        return self.classification.suggested_action

    @property
    def retry_after_ms(self) -> Optional[int]:
        return self.classification.retry_after_ms

    def user_message(self) -> str:
        """Get a short human-readable description of the failure."""
        if self.kind == ErrorKind.RATE_LIMIT:
            wait = ""
            if self.retry_after_ms:
                minutes = max(1, -(-self.retry_after_ms // 60_000))
                wait = f"wait {minutes} minute(s) or "
            return f"Rate Limited: {wait}try again later."
        return USER_MESSAGES[self.kind]

    def __repr__(self) -> str:
        return f"RefineryError(kind={self.kind.value}, message={self.message!r})"


def _error_text(error: object) -> str:
    """Flatten an error into the lowercase text the rules match against."""
    text = str(error)
    for attr in ("status_code", "code"):
        status = getattr(error, attr, None)
        if isinstance(status, int) and str(status) not in text:
            text = f"{status} {text}"
    return text.lower()


def _parse_retry_after(text: str) -> int:
    match = RETRY_HINT_PATTERN.search(text)
    if not match:
        return DEFAULT_RETRY_AFTER_MS
    value = int(match.group(1))
    if match.group(2).lower().startswith("min"):
        return value * 60 * 1000
    return value * 1000


def classify_error(error: object) -> RefineryError:
    """
    Map an arbitrary failure onto the error taxonomy.

    Rules are evaluated in priority order and the first match wins, since
    service messages frequently contain overlapping keywords.

    Args:
        error: An exception, string, or any other raw failure value

    Returns:
        A RefineryError carrying the classification
    """
    if isinstance(error, RefineryError):
        return error

    message = str(error) or type(error).__name__
    text = _error_text(error)

    if any(signal in text for signal in AUTH_SIGNALS):
        return RefineryError(
            message,
            ErrorKind.AUTH,
            retryable=False,
            suggested_action="Update your API key and try again.",
        )

    if any(signal in text for signal in RATE_LIMIT_SIGNALS):
        return RefineryError(
            message,
            ErrorKind.RATE_LIMIT,
            retryable=True,
            suggested_action="Wait a moment before trying again.",
            retry_after_ms=_parse_retry_after(text),
        )

    if isinstance(error, (ConnectionError, TimeoutError)) or any(
        signal in text for signal in NETWORK_SIGNALS
    ):
        return RefineryError(
            message,
            ErrorKind.NETWORK,
            retryable=True,
            suggested_action="Check your internet connection and try again.",
        )

    if any(signal in text for signal in TOKEN_SIGNALS):
        return RefineryError(
            message,
            ErrorKind.TOKEN_OVERFLOW,
            retryable=False,
            suggested_action="Shorten your prompt and try again.",
        )

    if any(signal in text for signal in SERVER_SIGNALS):
        return RefineryError(
            message,
            ErrorKind.API_ERROR,
            retryable=True,
            suggested_action="The API is temporarily unavailable. Please try again.",
        )

    return RefineryError(
        message,
        ErrorKind.UNKNOWN,
        retryable=False,
        suggested_action="An unexpected error occurred.",
    )
