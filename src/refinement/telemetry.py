"""Structured event recording for completed refinements."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

MAX_EVENTS = 1000

SENSITIVE_KEYS = ("apikey", "api_key", "key", "token", "secret", "password")

# Event names emitted by the pipeline
CACHE_HIT = "cache_hit"
REFINEMENT_COMPLETE = "refinement_complete"
REFINEMENT_DEDUPLICATED = "refinement_deduplicated"


def sanitize(data: dict[str, Any]) -> dict[str, Any]:
    """Mask values whose keys look like credentials."""
    return {
        k: "[REDACTED]" if any(s in k.lower() for s in SENSITIVE_KEYS) else v
        for k, v in data.items()
    }


@dataclass
class TelemetryEvent:
    name: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TelemetryRecorder:
    """
    In-process telemetry sink.

    Every event is written to the log and kept in a bounded buffer. Counters
    are derived from the event names the pipeline emits.
    """

    def __init__(self, max_events: int = MAX_EVENTS):
        self._events: deque[TelemetryEvent] = deque(maxlen=max_events)
        self.api_calls = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.refinements = 0
        self.deduplicated = 0

    def record_event(self, event_name: str, data: Optional[dict[str, Any]] = None) -> None:
        event = TelemetryEvent(name=event_name, data=sanitize(data or {}))
        self._events.append(event)

        if event_name == CACHE_HIT:
            self.cache_hits += 1
        elif event_name == REFINEMENT_COMPLETE:
            self.api_calls += 1
            self.cache_misses += 1
            self.refinements += 1
        elif event_name == REFINEMENT_DEDUPLICATED:
            self.deduplicated += 1

        details = " ".join(f"{k}={v!r}" for k, v in event.data.items())
        logger.info(f"{event_name} {details}".rstrip())

    @property
    def events(self) -> list[TelemetryEvent]:
        return list(self._events)

    def get_stats(self) -> dict[str, Any]:
        """Get counters and the derived cache hit rate."""
        total = self.cache_hits + self.cache_misses
        hit_rate = round(self.cache_hits / total * 100) if total > 0 else 0
        return {
            "api_calls": self.api_calls,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": f"{hit_rate}%",
            "refinements": self.refinements,
            "deduplicated": self.deduplicated,
        }

    def reset(self) -> None:
        self._events.clear()
        self.api_calls = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.refinements = 0
        self.deduplicated = 0
