"""
Defines the Prometheus metrics exported by htmlsift.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Several processors (and repeated test imports) share one default registry,
# so creation must reuse an already registered collector of the same name.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race: fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "documents_processed": Counter(
            "htmlsift_documents_processed_total",
            "Total number of documents run through the extraction pipeline",
            ["outcome"],
        ),
        "cache_events": Counter(
            "htmlsift_cache_events_total",
            "Content cache lookups and evictions",
            ["event"],
        ),
        "extraction_duration": Histogram(
            "htmlsift_extraction_duration_seconds",
            "Wall-clock time spent extracting a single document",
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0),
        ),
        "batch_in_flight": Gauge(
            "htmlsift_batch_items_in_flight",
            "Number of batch items currently being extracted",
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()
