# src/core/cache/property_cache.py
"""
In-memory TTL cache for merged property records and generated analyses.

Two independently keyed maps share one set of statistics:
  - scraped data : normalized listing URL -> MergedPropertyRecord
  - analysis     : normalized listing URL -> JSON-compatible analysis dict

Reads never raise; absence is the only failure signal. A daemon thread sweeps
expired entries every `policy.sweep_interval_s` once `start_sweeper()` is
called. `export_snapshot()` / `import_snapshot()` round-trip both maps and the
statistics as JSON; import replaces state wholesale or not at all.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from src.schemas.models import CachePolicy, CacheSnapshot, CacheStats, MergedPropertyRecord, SnapshotEntry

from .keys import normalize_cache_key
from .ttl_map import MISSING, CacheEntry, TTLMap

logger = logging.getLogger(__name__)

AnalysisPayload = dict[str, Any]


def _to_datetime(ts: float | None) -> datetime | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class PropertyCache:
    def __init__(self, policy: CachePolicy | None = None, *, clock: Callable[[], float] = time.time) -> None:
        self.policy = policy or CachePolicy()
        self._clock = clock
        self._scraped: TTLMap[MergedPropertyRecord] = TTLMap(self.policy.max_size, clock)
        self._analysis: TTLMap[AnalysisPayload] = TTLMap(self.policy.max_size, clock)
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: threading.Thread | None = None
        self._stop = threading.Event()

    # ---------- context manager ----------

    def __enter__(self) -> PropertyCache:
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop_sweeper()

    # ---------- scraped data ----------

    def set_scraped_data(self, url: str, record: MergedPropertyRecord, ttl: float | None = None) -> None:
        key = normalize_cache_key(url)
        self._scraped.put(key, record, self._ttl(ttl), url)

    def get_scraped_data(self, url: str) -> MergedPropertyRecord | None:
        return self._read(self._scraped, url)

    def has_cached_data(self, url: str) -> bool:
        """True when a fresh scraped entry exists; statistics are untouched."""
        return self._scraped.peek(normalize_cache_key(url)) is not None

    def cached_urls(self) -> list[str]:
        now = self._clock()
        return [e.url for e in self._scraped.entries() if not e.is_expired(now)]

    # ---------- analysis ----------

    def set_analysis(self, url: str, analysis: AnalysisPayload, ttl: float | None = None) -> None:
        key = normalize_cache_key(url)
        self._analysis.put(key, analysis, self._ttl(ttl), url)

    def get_analysis(self, url: str) -> AnalysisPayload | None:
        return self._read(self._analysis, url)

    # ---------- maintenance ----------

    def clear_all(self) -> None:
        self._scraped.clear()
        self._analysis.clear()
        with self._stats_lock:
            self._hits = 0
            self._misses = 0

    def sweep(self) -> int:
        """Delete expired entries from both maps regardless of reads."""
        removed = self._scraped.purge_expired() + self._analysis.purge_expired()
        if removed:
            logger.info("[Cache] Cleaned up %d expired entries", removed)
        return removed

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="property-cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self, timeout: float | None = 1.0) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None

    def warm(self, urls: Iterable[str], loader: Callable[[str], MergedPropertyRecord]) -> int:
        """Load and store records for URLs without a fresh entry; returns how many were loaded."""
        loaded = 0
        for url in urls:
            if self.has_cached_data(url):
                continue
            try:
                record = loader(url)
            except Exception as exc:  # noqa: BLE001
                logger.warning("[Cache] Warm-up failed for %s: %s", url, exc)
                continue
            self.set_scraped_data(url, record)
            loaded += 1
        logger.info("[Cache] Warmed %d entries", loaded)
        return loaded

    def stats(self) -> CacheStats:
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        oldest = [t for t in (self._scraped.oldest_timestamp(), self._analysis.oldest_timestamp()) if t is not None]
        return CacheStats(
            hits=hits,
            misses=misses,
            size=len(self._scraped) + len(self._analysis),
            oldest_entry=_to_datetime(min(oldest)) if oldest else None,
            hit_rate=(hits / total) * 100 if total > 0 else 0.0,
        )

    # ---------- snapshot ----------

    def export_snapshot(self) -> str:
        snapshot = CacheSnapshot(
            scraped_data=[(e.key, self._entry_out(e, e.data.model_dump(mode="json"))) for e in self._scraped.entries()],
            analysis=[(e.key, self._entry_out(e, e.data)) for e in self._analysis.entries()],
            stats=self.stats(),
            timestamp=_to_datetime(self._clock()),
        )
        return snapshot.model_dump_json(by_alias=True)

    def import_snapshot(self, blob: str | bytes) -> bool:
        """
        Replace all state with the snapshot's. A malformed blob is logged and
        leaves the current state untouched; returns whether the import applied.
        """
        try:
            snapshot = CacheSnapshot.model_validate(json.loads(blob))
            scraped = [
                self._entry_in(key, e, MergedPropertyRecord.model_validate(e.data)) for key, e in snapshot.scraped_data
            ]
            analysis = [self._entry_in(key, e, self._analysis_payload(e.data)) for key, e in snapshot.analysis]
        except (json.JSONDecodeError, ValidationError, TypeError, ValueError, KeyError) as exc:
            logger.error("[Cache] Failed to import cache: %s", exc)
            return False

        self._scraped.replace(scraped)
        self._analysis.replace(analysis)
        with self._stats_lock:
            self._hits = snapshot.stats.hits
            self._misses = snapshot.stats.misses
        logger.info("[Cache] Imported cache with %d entries", len(scraped) + len(analysis))
        return True

    # ---------- internals ----------

    def _ttl(self, ttl: float | None) -> float:
        return self.policy.default_ttl_s if ttl is None else ttl

    def _read(self, store: TTLMap[Any], url: str) -> Any:
        value = store.lookup(normalize_cache_key(url))
        with self._stats_lock:
            if value is MISSING:
                self._misses += 1
                return None
            self._hits += 1
        return value

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.policy.sweep_interval_s):
            try:
                self.sweep()
            except Exception:  # noqa: BLE001
                logger.exception("[Cache] Sweep failed")

    @staticmethod
    def _entry_out(entry: CacheEntry[Any], data: Any) -> SnapshotEntry:
        return SnapshotEntry(
            data=data,
            timestamp=_to_datetime(entry.timestamp),
            ttl=round(entry.ttl * 1000),
            hits=entry.hits,
            url=entry.url,
        )

    @staticmethod
    def _entry_in(key: str, entry: SnapshotEntry, data: Any) -> CacheEntry[Any]:
        ts = entry.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return CacheEntry(
            data=data,
            timestamp=ts.timestamp(),
            ttl=entry.ttl / 1000,
            hits=entry.hits,
            key=key,
            url=entry.url,
        )

    @staticmethod
    def _analysis_payload(data: Any) -> AnalysisPayload:
        if not isinstance(data, dict):
            raise TypeError(f"analysis entry must be an object, got {type(data).__name__}")
        return data


__all__ = ["PropertyCache", "AnalysisPayload"]
