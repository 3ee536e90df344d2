"""
Bounded, time-expiring cache for file metadata.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from docfs.filesystem.models import FileEntry

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached FileEntry and the monotonic time it expires at."""

    value: FileEntry
    expires_at: float


class MetadataCache:
    """
    LRU cache mapping absolute paths to FileEntry metadata.

    Expiry is enforced lazily on ``get``; capacity is enforced on ``set``
    by evicting the least-recently-used entry. Every operation runs under
    a single lock, so one instance can be shared between worker threads.

    Usage:
        cache = MetadataCache(max_entries=1000, ttl_seconds=30.0)

        entry = cache.get("/srv/docs/readme.md")
        if entry is None:
            entry = FileEntry.from_stat(path, os.stat(path))
            cache.set(path, entry)
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            max_entries: Maximum number of entries held at once (>= 1)
            ttl_seconds: Seconds an entry stays valid after its last ``set``
            clock: Monotonic time source (injectable for tests)
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must not be negative, got {ttl_seconds}")

        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, path: str) -> Optional[FileEntry]:
        """Return the cached entry, or None if absent or expired."""
        key = str(path)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._clock() > entry.expires_at:
                del self._entries[key]
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, path: str, value: FileEntry) -> None:
        """Insert or refresh an entry as most-recently-used."""
        key = str(path)
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value, expires_at=self._clock() + self.ttl_seconds
            )
            self._entries.move_to_end(key)

            if len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Evicted least-recently-used entry: {evicted}")

    def clear(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Hit, miss and eviction counters plus the current size."""
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"MetadataCache(max_entries={self.max_entries}, "
            f"ttl_seconds={self.ttl_seconds}, size={len(self)})"
        )
