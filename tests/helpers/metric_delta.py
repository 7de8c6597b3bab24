"""
Helpers for validating metric value changes during tests.

The default Prometheus registry is process-global, so tests assert on deltas
rather than absolute values.
"""

from contextlib import contextmanager


def _value(metric) -> float:
    if not hasattr(metric, "_value"):
        raise ValueError(f"Metric {metric} doesn't have a _value attribute")
    return metric._value.get()


@contextmanager
def metric_delta(metric, expected_delta=1):
    """
    Context manager to validate counter or gauge changes.

    Usage:
        with metric_delta(METRICS["cache_events"].labels(event="hit")):
            # Code that should record exactly one cache hit
            pass
    """
    initial_value = _value(metric)

    yield

    final_value = _value(metric)
    actual_delta = final_value - initial_value

    if actual_delta != expected_delta:
        raise AssertionError(
            f"Expected metric to change by {expected_delta}, "
            f"but it changed by {actual_delta} "
            f"(from {initial_value} to {final_value})"
        )


def get_histogram_count(histogram):
    """Get the current observation count for a histogram."""
    for metric_family in histogram.collect():
        for sample in metric_family.samples:
            if sample.name.endswith("_count"):
                return sample.value
    return 0.0


@contextmanager
def histogram_observes(histogram, min_observations=1):
    """
    Context manager to validate histogram observations.

    Usage:
        with histogram_observes(METRICS["extraction_duration"]):
            # Code that should record at least one timing observation
            pass
    """
    initial_count = get_histogram_count(histogram)

    yield

    final_count = get_histogram_count(histogram)
    actual_observations = final_count - initial_count

    if actual_observations < min_observations:
        raise AssertionError(
            f"Expected at least {min_observations} histogram observations, "
            f"but got {actual_observations} "
            f"(count went from {initial_count} to {final_count})"
        )
