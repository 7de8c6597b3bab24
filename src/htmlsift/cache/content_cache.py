"""Content-addressed result cache with LRU eviction and TTL expiry."""

from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

import structlog

from htmlsift.config.config import ExtractConfig
from htmlsift.extractor.models import Result
from htmlsift.observability import increment

logger = structlog.get_logger(__name__)

KEY_NAMESPACE = b"htmlsift/1\x00"


@dataclass(slots=True)
class CacheEntry:
    """Cached result with creation and last-access clock readings."""

    key: str
    value: Result
    created_at: float
    last_access: float


@dataclass(slots=True, frozen=True)
class CacheStats:
    hits: int
    misses: int
    evictions: int
    expirations: int
    entries: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class ContentCache:
    """
    In-memory LRU cache keyed by a hash of (document bytes, config).

    Two ordered maps share the keys: ``_entries`` is kept in access order
    (front = least recently used) and ``_created`` in insertion order, which
    is also expiry order because every entry has the same TTL. Lookup, insert,
    eviction and expiry are therefore all O(1) amortised.

    Thread Safety: one ``threading.Lock`` guards both maps and the counters.
    Expired entries are removed lazily on access, when room is needed, or by
    ``sweep_expired``.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl: float = 3600.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_entries = max_entries
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._created: OrderedDict[str, float] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

        logger.debug("Content cache initialized", max_entries=max_entries, ttl=ttl)

    @property
    def enabled(self) -> bool:
        return self._max_entries > 0

    @staticmethod
    def compute_key(document: bytes, config: ExtractConfig) -> str:
        """SHA-256 over a namespace tag, the canonical config and the document bytes."""
        digest = hashlib.sha256(KEY_NAMESPACE)
        digest.update(config.canonical())
        digest.update(b"\x00")
        digest.update(document)
        return digest.hexdigest()

    def get(self, key: str) -> tuple[Result | None, bool]:
        """Return ``(result, True)`` on a hit and ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()
            if entry is not None and self._expired(entry, now):
                self._remove(key)
                self._expirations += 1
                entry = None
            if entry is None:
                self._misses += 1
                increment("cache_events", labels={"event": "miss"})
                return None, False

            entry.last_access = now
            self._entries.move_to_end(key)
            self._hits += 1
            increment("cache_events", labels={"event": "hit"})
            return entry.value, True

    def put(self, key: str, value: Result) -> None:
        if not self.enabled:
            return
        with self._lock:
            now = self._clock()
            if key in self._entries:
                self._remove(key)
            elif len(self._entries) >= self._max_entries:
                self._purge_expired(now)
                while len(self._entries) >= self._max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    del self._created[evicted]
                    self._evictions += 1
                    increment("cache_events", labels={"event": "eviction"})
                    logger.debug("Cache eviction", key=evicted[:12])
            self._entries[key] = CacheEntry(key=key, value=value, created_at=now, last_access=now)
            self._created[key] = now

    def sweep_expired(self) -> int:
        """Physically drop expired entries. Returns how many were removed."""
        with self._lock:
            return self._purge_expired(self._clock())

    def clear(self) -> None:
        """Drop all entries. Counters are left untouched."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._created.clear()
        logger.info("Cache cleared", removed=count)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                entries=len(self._entries),
            )

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = self._misses = self._evictions = self._expirations = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._expired(entry, self._clock())

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return self._ttl > 0 and now - entry.created_at > self._ttl

    def _remove(self, key: str) -> None:
        del self._entries[key]
        del self._created[key]

    def _purge_expired(self, now: float) -> int:
        if self._ttl <= 0:
            return 0
        removed = 0
        while self._created:
            key, created_at = next(iter(self._created.items()))
            if now - created_at <= self._ttl:
                break
            self._remove(key)
            removed += 1
        self._expirations += removed
        return removed
