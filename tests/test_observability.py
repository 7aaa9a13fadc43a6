"""
Tests for structured logging, correlation IDs and metrics.
"""

import json
import logging

import pytest

from structure_engine.errors import MissingThinkingTimeError
from structure_engine.jobs import dispatch_structure_recompute, run_structure_job
from structure_engine.observability import (
    REGISTRY,
    Counter,
    HumanFormatter,
    JSONFormatter,
    RequestContext,
    configure_logging,
    cycle_duration,
    get_request_id,
    jobs_debounced,
    jobs_enqueued,
    jobs_failed,
    job_request_id,
    timed,
)
from structure_engine.observability.metrics import Histogram, MetricsRegistry
from tests.fixtures import USER_ID, add_decision


def make_record(message="hello", **extra):
    record = logging.LogRecord("structure_engine.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


# =============================================================================
# CONTEXT
# =============================================================================


class TestRequestContext:
    def test_sets_and_resets(self):
        assert get_request_id() is None
        with RequestContext("req-abc") as ctx:
            assert ctx.request_id == "req-abc"
            assert get_request_id() == "req-abc"
        assert get_request_id() is None

    def test_generates_id(self):
        with RequestContext() as ctx:
            assert ctx.request_id.startswith("req-")

    def test_job_request_id(self):
        assert job_request_id("job_123") == "job-job_123"


# =============================================================================
# FORMATTERS
# =============================================================================


class TestFormatters:
    def test_json_formatter_includes_extra_and_request_id(self):
        with RequestContext("req-json"):
            line = JSONFormatter().format(make_record(job_id="job_1", swept=3))

        data = json.loads(line)
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "structure_engine.test"
        assert data["request_id"] == "req-json"
        assert data["job_id"] == "job_1"
        assert data["swept"] == 3
        assert "msg" not in data
        assert data["timestamp"].endswith("Z")

    def test_json_formatter_serializes_unknown_types(self):
        data = json.loads(JSONFormatter().format(make_record(obj=object())))
        assert isinstance(data["obj"], str)

    def test_human_formatter(self):
        with RequestContext("req-human"):
            line = HumanFormatter().format(make_record())
        assert "[INFO] structure_engine.test: [req-human] hello" in line

    def test_configure_logging(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("STRUCTURE_LOG_LEVEL", "warning")
        configure_logging(json_format=True)

        assert restore_root_logger.level == logging.WARNING
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_job_logs_carry_job_request_id(self, store, caplog):
        seen = []

        class Capture(logging.Handler):
            def emit(self, record):
                seen.append(get_request_id())

        handler = Capture()
        logger = logging.getLogger("structure_engine.jobs.processor")
        logger.addHandler(handler)
        try:
            job_id = dispatch_structure_recompute(store, USER_ID, "manual").job_id
            with caplog.at_level(logging.INFO, logger="structure_engine.jobs.processor"):
                run_structure_job(store, job_id)
        finally:
            logger.removeHandler(handler)

        assert seen
        assert set(seen) == {f"job-{job_id}"}


# =============================================================================
# METRICS
# =============================================================================


class TestMetrics:
    def test_counter_and_registry(self):
        registry = MetricsRegistry()
        counter = registry.counter("things_total", "Things")
        counter.inc()
        counter.inc(2)

        assert registry.counter("things_total") is counter
        assert counter.value == 3
        assert "things_total 3" in registry.to_prometheus()
        assert "# TYPE things_total counter" in registry.to_prometheus()

    def test_histogram_rolls_over(self):
        histogram = Histogram("h", "test")
        for _ in range(1500):
            histogram.observe(1.0)
        assert histogram.count == 1000
        assert histogram.sum == 1000.0

    def test_timed_decorator(self):
        registry = MetricsRegistry()
        histogram = registry.histogram("op_seconds")

        @timed(histogram)
        def op():
            """Does a thing."""
            return 42

        assert op() == 42
        assert op.__name__ == "op"
        assert histogram.count == 1

    def test_gauge_set(self):
        registry = MetricsRegistry()
        registry.gauge("depth").set(4)
        assert "depth 4" in registry.to_prometheus()

    def test_engine_counters_move(self, store):
        enqueued, debounced, failed = jobs_enqueued.value, jobs_debounced.value, jobs_failed.value

        dispatch_structure_recompute(store, USER_ID, "manual")
        dispatch_structure_recompute(store, USER_ID, "manual")
        add_decision(store, "orphan", None)
        job_id = dispatch_structure_recompute(store, USER_ID, "ingestion").job_id
        with pytest.raises(MissingThinkingTimeError):
            run_structure_job(store, job_id)

        assert jobs_enqueued.value == enqueued + 2
        assert jobs_debounced.value == debounced + 1
        assert jobs_failed.value == failed + 1

    def test_cycle_duration_observed_per_job(self, store):
        before = cycle_duration.count
        job_id = dispatch_structure_recompute(store, USER_ID, "manual").job_id

        run_structure_job(store, job_id)

        assert cycle_duration.count == min(before + 1, 1000)

    def test_global_registry_exports_engine_metrics(self):
        text = REGISTRY.to_prometheus()
        assert "structure_jobs_enqueued_total" in text
        assert "structure_cycle_duration_seconds_count" in text
        assert isinstance(jobs_enqueued, Counter)
