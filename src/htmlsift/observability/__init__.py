"""Logging, metrics and per-processor statistics."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .logging import configure_logging
from .metrics import METRICS
from .statistics import ProcessorStatistics, Statistics

__all__ = [
    "METRICS",
    "ProcessorStatistics",
    "Statistics",
    "configure_logging",
    "export_prometheus",
    "gauge_add",
    "histogram",
    "increment",
]


def increment(name: str, value: float = 1.0, labels: Optional[Dict[str, Any]] = None) -> None:
    """Increment a counter metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).inc(value)
        else:
            metric.inc(value)


def gauge_add(name: str, value: float) -> None:
    """Move a gauge metric up or down."""
    if name in METRICS:
        METRICS[name].inc(value)


def histogram(name: str, value: float, labels: Optional[Dict[str, Any]] = None) -> None:
    """Observe a histogram metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).observe(value)
        else:
            metric.observe(value)


def export_prometheus() -> str:
    """Export metrics in Prometheus text format."""
    from prometheus_client import generate_latest

    return generate_latest().decode("utf-8")
