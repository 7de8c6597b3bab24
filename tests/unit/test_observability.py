"""
Tests for metrics, structured logging and per-processor statistics.
"""

import json
import logging
from datetime import timedelta

import pytest
import structlog

from htmlsift import Processor
from htmlsift.config import MonitoringConfig
from htmlsift.errors import ErrorKind, InputTooLargeError
from htmlsift.observability import METRICS, configure_logging, export_prometheus
from htmlsift.observability.metrics import Counter
from htmlsift.observability.statistics import ProcessorStatistics
from tests.helpers.metric_delta import histogram_observes, metric_delta


@pytest.fixture
def restore_logging():
    """Undo global logging configuration done by a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestMetrics:
    """Prometheus collectors move with processor activity."""

    def test_success_and_cache_hit_outcomes(self, processor, article_html):
        documents = METRICS["documents_processed"]

        with metric_delta(documents.labels(outcome="success")):
            with metric_delta(METRICS["cache_events"].labels(event="miss")):
                processor.extract(article_html)

        with metric_delta(documents.labels(outcome="cache_hit")):
            with metric_delta(METRICS["cache_events"].labels(event="hit")):
                processor.extract(article_html)

    def test_failure_outcome(self, small_processor):
        with metric_delta(METRICS["documents_processed"].labels(outcome="input_too_large")):
            with pytest.raises(InputTooLargeError):
                small_processor.extract("x" * 5000)

    def test_eviction_event(self, small_processor):
        with metric_delta(METRICS["cache_events"].labels(event="eviction")):
            for index in range(3):
                small_processor.extract(f"<p>page {index}</p>")

    def test_duration_histogram(self, processor, blog_html):
        with histogram_observes(METRICS["extraction_duration"]):
            processor.extract(blog_html)

    def test_in_flight_gauge_returns_to_baseline(self, processor, article_html):
        with metric_delta(METRICS["batch_in_flight"], 0):
            processor.extract_batch_sync([article_html] * 4, pool_size=2)

    def test_export(self, processor, article_html):
        processor.extract(article_html)
        exported = export_prometheus()

        assert "htmlsift_documents_processed_total" in exported
        assert "htmlsift_extraction_duration_seconds_bucket" in exported

    def test_duplicate_registration_reuses_collector(self):
        again = Counter(
            "htmlsift_documents_processed_total",
            "Total number of documents run through the extraction pipeline",
            ["outcome"],
        )
        assert again is METRICS["documents_processed"]


class TestProcessorStatistics:
    def test_counters(self):
        stats = ProcessorStatistics()
        stats.record_success(0.2)
        stats.record_success(0.4)
        stats.record_cache_hit()
        stats.record_failure(ErrorKind.DEPTH_EXCEEDED)

        documents, errors, average = stats.snapshot()

        assert documents == 4
        assert errors == 1
        assert average.total_seconds() == pytest.approx(0.3)
        assert stats.errors_by_kind() == {ErrorKind.DEPTH_EXCEEDED: 1}

    def test_reset(self):
        stats = ProcessorStatistics()
        stats.record_success(1.0)
        stats.record_failure(ErrorKind.PROCESSING_TIMEOUT)
        stats.reset()

        assert stats.snapshot() == (0, 0, timedelta())
        assert stats.errors_by_kind() == {}


class TestLogging:
    def test_json_file_output_with_batch_id(self, tmp_path, restore_logging, article_html):
        log_file = tmp_path / "logs" / "htmlsift.log"
        configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file)))

        with Processor() as proc:
            proc.extract_batch_sync([article_html, article_html], pool_size=2)

        records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines() if line]
        events = {record["event"]: record for record in records}

        assert "Logging configured" in events
        assert events["Batch started"]["batch_id"] == events["Batch completed"]["batch_id"]
        assert events["Batch completed"]["succeeded"] == 2
        assert events["Batch started"]["level"] == "info"

    def test_bound_context_reaches_records(self, tmp_path, restore_logging):
        log_file = tmp_path / "htmlsift.log"
        configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file)))

        with structlog.contextvars.bound_contextvars(batch_id="b-1", tenant="docs"):
            structlog.get_logger("htmlsift.test").info("Inside context")
        structlog.get_logger("htmlsift.test").info("Outside context")

        records = {
            record["event"]: record
            for record in map(json.loads, log_file.read_text(encoding="utf-8").splitlines())
        }
        assert records["Inside context"]["batch_id"] == "b-1"
        assert records["Inside context"]["tenant"] == "docs"
        assert "batch_id" not in records["Outside context"]

    def test_console_output(self, restore_logging, capsys):
        configure_logging(MonitoringConfig(log_level="WARNING"))
        structlog.get_logger("htmlsift.test").warning("Something odd", detail="x")

        out = capsys.readouterr().out
        assert "Something odd" in out
        assert "detail=x" in out
