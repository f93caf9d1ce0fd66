"""
In-memory TTL cache.

Values are stored as JSON text and deserialized on read, so callers never
share mutable objects through the cache. Expired entries are evicted lazily
on the next read; nothing sweeps the cache in the background.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Bulk catalogs are refreshed at most once an hour by default
DEFAULT_TTL_SECONDS = 3600


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached payload.

    Attributes:
        data: JSON-encoded payload
        created_at: Clock reading when the entry was stored
        ttl_seconds: Validity duration
    """
    data: str
    created_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl_seconds


class TTLCache:
    """
    Thread-safe key/value cache with per-entry expiry.

    Args:
        clock: Time source in seconds (monotonic by default)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """
        Get a cached value.

        Returns:
            The deserialized value, or None on a miss. Expired or undecodable
            entries are evicted and reported as a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"cache miss: {key}")
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug(f"cache expired: {key}")
                return None

        try:
            value = json.loads(entry.data)
        except ValueError:
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
            logger.debug(f"cache entry undecodable, evicted: {key}")
            return None

        logger.debug(f"cache hit: {key}")
        return value

    def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        """Store a value, overwriting any existing entry."""
        try:
            data = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"cache value for {key} is not serializable: {e}")
            return

        with self._lock:
            self._entries[key] = CacheEntry(data=data, created_at=self._clock(), ttl_seconds=ttl)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __bool__(self) -> bool:
        # Truthy even when empty
        return True

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
