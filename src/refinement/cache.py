"""Content-addressed cache for refined prompts."""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

FINGERPRINT_LENGTH = 16


@dataclass
class CacheEntry:
    """A single cached refinement with LRU bookkeeping."""

    value: str
    touched_at: float
    model_id: str
    input_length: int


@dataclass
class CacheStats:
    """Snapshot of cache performance."""

    size: int
    hits: int
    misses: int
    max_size: int
    ttl_ms: int

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{self.hit_rate * 100:.1f}%",
            "max_size": self.max_size,
            "ttl_minutes": round(self.ttl_ms / 60_000),
        }


class RequestCache:
    """
    Bounded, time-expiring cache of refinement results.

    Entries are keyed by a fingerprint of (input, model, context). Every
    successful read refreshes the entry's timestamp, and the entry with the
    oldest timestamp is evicted when a new key arrives at capacity.

    Usage:
        cache = RequestCache(max_size=50, ttl_ms=3_600_000)
        key = cache.hash("add dark mode", "gemini-2.5-flash", '{"project": "react"}')

        cached = cache.get(key)
        if cached is None:
            refined = await refine(...)
            cache.set(key, refined, "gemini-2.5-flash", len("add dark mode"))
    """

    def __init__(
        self,
        max_size: int = 50,
        ttl_ms: int = 3_600_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(cls, config: Any, clock: Optional[Callable[[], float]] = None) -> "RequestCache":
        """Create a cache sized from a RefinementConfig."""
        return cls(
            max_size=config.cache_max_size,
            ttl_ms=config.cache_ttl_ms,
            clock=clock or time.monotonic,
        )

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def hash(user_input: str, model_id: str, context_digest: str) -> str:
        """Derive the fingerprint for a request."""
        data = f"{user_input}|{model_id}|{context_digest}"
        return hashlib.sha256(data.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]

    def _is_expired(self, entry: CacheEntry) -> bool:
        age_ms = (self._clock() - entry.touched_at) * 1000
        return age_ms > self.ttl_ms

    def get(self, key: str) -> Optional[str]:
        """
        Retrieve a cached value.

        Args:
            key: Request fingerprint

        Returns:
            The cached value, or None on a miss or an expired entry
        """
        entry = self._entries.get(key)
        if entry is not None:
            if self._is_expired(entry):
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache expired: {key}")
                return None

            entry.touched_at = self._clock()
            self._hits += 1
            logger.debug(f"Cache hit: {key}")
            return entry.value

        self._misses += 1
        logger.debug(f"Cache miss: {key}")
        return None

    def set(self, key: str, value: str, model_id: str, input_length: int) -> None:
        """Store a value, evicting the oldest entry if a new key arrives at capacity."""
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_oldest()

        self._entries[key] = CacheEntry(
            value=value,
            touched_at=self._clock(),
            model_id=model_id,
            input_length=input_length,
        )
        logger.debug(f"Cached: {key} (model={model_id})")

    def has(self, key: str) -> bool:
        """Check for a live entry without touching counters or timestamps."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._is_expired(entry):
            del self._entries[key]
            return False
        return True

    def _evict_oldest(self) -> None:
        """Evict the least recently touched entry."""
        if not self._entries:
            return

        # min() keeps the first key found on timestamp ties
        oldest_key = min(self._entries, key=lambda k: self._entries[k].touched_at)
        del self._entries[oldest_key]
        logger.debug(f"Evicted: {oldest_key}")

    def prune(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        expired_keys = [k for k, v in self._entries.items() if self._is_expired(v)]
        for key in expired_keys:
            del self._entries[key]

        if expired_keys:
            logger.info(f"Pruned {len(expired_keys)} expired cache entries")
        return len(expired_keys)

    def reconfigure(self, max_size: Optional[int] = None, ttl_ms: Optional[int] = None) -> None:
        """Apply new limits immediately, shrinking the store if needed."""
        if max_size is not None:
            self.max_size = max_size
        if ttl_ms is not None:
            self.ttl_ms = ttl_ms

        while len(self._entries) > self.max_size:
            self._evict_oldest()

    def clear(self) -> None:
        """Clear all entries and reset counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        logger.info("Cache cleared")

    reset = clear

    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return CacheStats(
            size=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            max_size=self.max_size,
            ttl_ms=self.ttl_ms,
        )
