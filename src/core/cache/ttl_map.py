# src/core/cache/ttl_map.py
"""
Bounded TTL map used for each side of the property cache.

Entries carry their own time-to-live and a hit counter. Expiry is lazy on read
(`lookup`) and eager on `purge_expired`. When the map is full, the entry with
the oldest timestamp is evicted before a new key is inserted.

All methods take the map's lock, so a single instance can be shared by
concurrent reconciliations.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass
class CacheEntry(Generic[T]):
    data: T
    timestamp: float  # epoch seconds
    ttl: float  # seconds
    hits: int
    key: str
    url: str

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class TTLMap(Generic[T]):
    def __init__(self, max_size: int, clock: Callable[[], float]) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._max_size = max_size
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    @property
    def max_size(self) -> int:
        return self._max_size

    def put(self, key: str, value: T, ttl: float, url: str) -> None:
        """Insert or overwrite `key`, evicting the oldest entry first if the map is full."""
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_size:
                evicted = self.evict_oldest()
                logger.debug("[Cache] Evicted oldest entry %s", evicted)
            self._entries[key] = CacheEntry(
                data=copy.deepcopy(value),
                timestamp=self._clock(),
                ttl=ttl,
                hits=0,
                key=key,
                url=url,
            )

    def lookup(self, key: str) -> T | object:
        """
        Return a copy of the stored value, or the `MISSING` sentinel.

        An expired entry is deleted as a side effect and reported as missing.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return _MISSING
            entry.hits += 1
            return copy.deepcopy(entry.data)

    def peek(self, key: str) -> CacheEntry[T] | None:
        """Fresh entry for `key` without counting a hit (None if absent or stale)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return None
            return entry

    def evict_oldest(self) -> str | None:
        with self._lock:
            if not self._entries:
                return None
            oldest = min(self._entries.values(), key=lambda e: e.timestamp)
            del self._entries[oldest.key]
            return oldest.key

    def purge_expired(self) -> int:
        """Delete every expired entry; returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, e in self._entries.items() if e.is_expired(now)]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def oldest_timestamp(self) -> float | None:
        with self._lock:
            if not self._entries:
                return None
            return min(e.timestamp for e in self._entries.values())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def entries(self) -> list[CacheEntry[T]]:
        """Insertion-ordered copies of all entries (fresh or not)."""
        with self._lock:
            return [copy.deepcopy(e) for e in self._entries.values()]

    def replace(self, entries: Iterator[CacheEntry[T]] | list[CacheEntry[T]]) -> None:
        """Swap the whole content for `entries` (used by snapshot import), keeping the newest `max_size`."""
        fresh = {e.key: e for e in entries}
        if len(fresh) > self._max_size:
            newest = sorted(fresh.values(), key=lambda e: e.timestamp, reverse=True)[: self._max_size]
            fresh = {e.key: e for e in newest}
        with self._lock:
            self._entries = fresh


MISSING = _MISSING

__all__ = ["CacheEntry", "TTLMap", "MISSING"]
