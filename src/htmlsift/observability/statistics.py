"""
Per-processor extraction counters.

Each ``Processor`` owns exactly one ``ProcessorStatistics``; there is no
module-level instance. Prometheus collectors in ``metrics`` are the
process-global export, these counters are what ``get_statistics()`` reports.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import timedelta

from htmlsift.errors import ErrorKind


@dataclass(slots=True, frozen=True)
class Statistics:
    """Point-in-time snapshot of a processor's counters."""

    documents_processed: int
    cache_hits: int
    cache_misses: int
    evictions: int
    expirations: int
    error_count: int
    cache_entries: int
    average_processing_time: timedelta


class ProcessorStatistics:
    """Thread-safe document and error counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents_processed = 0
        self._error_count = 0
        self._errors_by_kind: dict[ErrorKind, int] = {}
        self._total_processing_time = 0.0
        self._computed = 0

    def record_success(self, elapsed: float) -> None:
        with self._lock:
            self._documents_processed += 1
            self._total_processing_time += elapsed
            self._computed += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._documents_processed += 1

    def record_failure(self, kind: ErrorKind) -> None:
        with self._lock:
            self._documents_processed += 1
            self._error_count += 1
            self._errors_by_kind[kind] = self._errors_by_kind.get(kind, 0) + 1

    def errors_by_kind(self) -> dict[ErrorKind, int]:
        with self._lock:
            return dict(self._errors_by_kind)

    def snapshot(self) -> tuple[int, int, timedelta]:
        """Return ``(documents_processed, error_count, average_processing_time)``."""
        with self._lock:
            average = self._total_processing_time / self._computed if self._computed else 0.0
            return self._documents_processed, self._error_count, timedelta(seconds=average)

    def reset(self) -> None:
        with self._lock:
            self._documents_processed = 0
            self._error_count = 0
            self._errors_by_kind.clear()
            self._total_processing_time = 0.0
            self._computed = 0
