"""Key-value cache for finished transcripts with explicit TTL eviction."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

CACHE_PREFIX = "transcript_"


class TranscriptCache(Protocol):
    """Cache interface injected into the session controller."""

    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any, ttl: float) -> None: ...

    def delete(self, key: str) -> None: ...


def cache_key(file_hash: str, options_fingerprint: str) -> str:
    """Build the cache key for a file/options pair."""
    return f"{CACHE_PREFIX}{file_hash}:{options_fingerprint}"


class InMemoryTranscriptCache:
    """Dict-backed TranscriptCache. Expired entries are evicted on read.

    Args:
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("Evicted expired cache entry %s", key)
            return None
        return value

    def put(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def evict_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
