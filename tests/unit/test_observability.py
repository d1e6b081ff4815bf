"""Unit tests for observability module."""

import json
import logging
import sys

from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from prometheus_client import REGISTRY
import pytest

from zettel_search.observability import (
    SEARCH_LATENCY,
    JsonFormatter,
    bind_engine,
    configure_logging,
    create_span,
    get_metrics,
    get_metrics_content_type,
    get_trace_context,
    init_metrics,
    init_tracing,
    set_trace_context,
    track_latency,
    tracing as tracing_module,
)
from zettel_search.observability.context import trace_context, update_span_id
from zettel_search.service_layer.search_service import NoteSearchEngine


def _record(msg: str = "test message", level: int = logging.INFO, name: str = "zettel_search.search.parser"):
    return logging.LogRecord(name=name, level=level, pathname="test.py", lineno=1, msg=msg, args=(), exc_info=None)


@pytest.fixture(autouse=True)
def reset_trace_context():
    token = trace_context.set(None)
    yield
    trace_context.reset(token)


@pytest.fixture
def span_exporter(monkeypatch):
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setitem(tracing_module._tracer_holder, "tracer", provider.get_tracer("test"))
    return exporter


class TestJsonFormatter:
    """Tests for structured JSON logging."""

    def test_format_includes_trace_context(self):
        set_trace_context("a" * 32, "b" * 16)
        data = json.loads(JsonFormatter().format(_record()))

        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["trace_id"] == "a" * 32
        assert data["span_id"] == "b" * 16
        assert data["component"] == "parser"
        assert "timestamp" in data

    def test_format_includes_engine_and_extra_fields(self):
        bind_engine("notes")
        record = _record()
        record.query = "tag:work"
        record.error_type = "ParseError"

        data = json.loads(JsonFormatter().format(record))
        assert data["engine"] == "notes"
        assert data["query"] == "tag:work"
        assert data["error_type"] == "ParseError"
        assert "args" not in data

    def test_redacts_secret_keys(self):
        record = _record()
        record.token = "hunter2"
        assert json.loads(JsonFormatter().format(record))["token"] == "[REDACTED]"

    def test_truncates_long_values(self):
        record = _record("x" * 5000)
        record.query = "q" * 1000
        data = json.loads(JsonFormatter().format(record))
        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3
        assert data["query"].endswith("...")
        assert len(data["query"]) == JsonFormatter.MAX_EXTRA_LEN + 3

    def test_serializes_sets_and_tuples(self):
        record = _record()
        record.tags = {"b", "a"}
        record.span = (1, 2)
        data = json.loads(JsonFormatter().format(record))
        assert data["tags"] == ["a", "b"]
        assert data["span"] == [1, 2]

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, "t.py", 1, "failed", (), sys.exc_info())
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestConfigureLogging:
    """Tests for root logger configuration."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler_installed(self):
        configure_logging("debug", json_output=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_plain_handler_and_overrides(self):
        configure_logging("warning", json_output=False, logger_levels={"zettel_search.search": "debug"})
        assert not isinstance(logging.getLogger().handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("zettel_search.search").level == logging.DEBUG
        logging.getLogger("zettel_search.search").setLevel(logging.NOTSET)


class TestTraceContext:
    """Tests for context propagation."""

    def test_context_is_generated_on_demand(self):
        ctx = get_trace_context()
        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16
        assert get_trace_context() is ctx

    def test_update_span_id_keeps_trace_and_engine(self):
        set_trace_context("t" * 32, "s" * 16)
        bind_engine("notes")
        update_span_id("n" * 16)
        assert trace_context.get() == {"trace_id": "t" * 32, "span_id": "n" * 16, "engine": "notes"}


class TestTracing:
    """Tests for span helpers."""

    def test_create_span_records_attributes_and_span_id(self, span_exporter):
        set_trace_context("a" * 32, "b" * 16)
        with create_span("unit.op", attributes={"note_search.engine": "notes"}):
            active_span_id = get_trace_context()["span_id"]

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "unit.op"
        assert span.attributes["note_search.engine"] == "notes"
        assert active_span_id == format(span.context.span_id, "016x")

    def test_init_tracing_installs_sdk_provider(self, monkeypatch):
        monkeypatch.setitem(tracing_module._tracer_holder, "tracer", None)
        provider = init_tracing("zettel-search-test", {"deployment.environment": "unit"})

        assert isinstance(provider, TracerProvider)
        assert provider.resource.attributes["service.name"] == "zettel-search-test"
        assert provider.resource.attributes["deployment.environment"] == "unit"
        assert tracing_module._tracer_holder["tracer"] is not None

    def test_create_span_marks_errors(self, span_exporter):
        with pytest.raises(RuntimeError), create_span("unit.fail"):
            raise RuntimeError("nope")

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR

    def test_search_emits_span(self, span_exporter, sample_notes):
        engine = NoteSearchEngine(name="traced")
        engine.initialize(sample_notes)
        engine.search("tag:work AND NOT tag:archived")

        spans = {span.name: span for span in span_exporter.get_finished_spans()}
        assert spans["note_search.search"].attributes["note_search.result_count"] == 2
        assert spans["note_search.search"].attributes["note_search.ast_nodes"] == 4
        assert spans["note_search.initialize"].attributes["note_search.note_count"] == 5


class TestMetrics:
    """Tests for Prometheus metrics bridge."""

    def test_track_latency_observes_once(self):
        before = REGISTRY.get_sample_value("note_search_latency_seconds_count", {"engine": "latency-unit"}) or 0.0
        with track_latency(SEARCH_LATENCY, engine="latency-unit"):
            pass
        after = REGISTRY.get_sample_value("note_search_latency_seconds_count", {"engine": "latency-unit"})
        assert after == before + 1

    def test_track_latency_observes_on_error(self):
        with pytest.raises(ValueError), track_latency(SEARCH_LATENCY, engine="latency-error"):
            raise ValueError("boom")
        assert REGISTRY.get_sample_value("note_search_latency_seconds_count", {"engine": "latency-error"}) == 1.0

    def test_init_metrics_is_idempotent(self):
        provider = init_metrics()
        assert isinstance(provider, MeterProvider)
        assert init_metrics("another-name") is provider

    def test_exposition(self):
        SEARCH_LATENCY.labels(engine="exposition").observe(0.001)
        assert b"note_search_latency_seconds" in get_metrics()
        assert get_metrics_content_type().startswith("text/plain")
