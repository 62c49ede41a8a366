"""Unit tests for structured logging, log correlation and tracing spans."""

import json
import logging

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
import pytest

from sapa_search.observability import (
    JsonFormatter,
    configure_logging,
    create_span,
    get_trace_context,
    operation_context,
    tracing as tracing_module,
)


@pytest.fixture
def exporter(monkeypatch) -> InMemorySpanExporter:
    memory = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(memory))
    monkeypatch.setitem(tracing_module._tracer_holder, "tracer", provider.get_tracer("test"))
    return memory


def make_record(message: str = "Search finished", **extra) -> logging.LogRecord:
    record = logging.LogRecord("sapa_search.service_layer.search_engine", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestJsonFormatter:
    def test_includes_operation_labels(self):
        with operation_context("search", query="spring") as ctx:
            payload = json.loads(JsonFormatter().format(make_record()))

        assert payload["level"] == "INFO"
        assert payload["message"] == "Search finished"
        assert payload["component"] == "search_engine"
        assert payload["operation"] == "search"
        assert payload["query"] == "spring"
        assert payload["trace_id"] == ctx["trace_id"]

    def test_redacts_secrets_and_serializes_extras(self):
        payload = json.loads(JsonFormatter().format(make_record(token="abc", kinds={"meeting"}, documents=6)))

        assert payload["token"] == "[REDACTED]"
        assert payload["kinds"] == ["meeting"]
        assert payload["documents"] == 6

    def test_truncates_long_messages(self):
        payload = json.loads(JsonFormatter().format(make_record("x" * 5000)))

        assert len(payload["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3


@pytest.mark.unit
class TestOperationContext:
    def test_nested_operations_share_the_trace(self):
        with operation_context("build_index") as outer, operation_context("search", query="spring") as inner:
            assert inner["trace_id"] == outer["trace_id"]
            assert inner["span_id"] != outer["span_id"]
            assert get_trace_context()["operation"] == "search"

    def test_context_is_restored(self):
        with operation_context("build_index"):
            pass
        assert get_trace_context().get("operation") is None

    def test_none_labels_are_dropped(self):
        with operation_context("search", query=None) as ctx:
            assert "query" not in ctx


@pytest.mark.unit
class TestCreateSpan:
    def test_records_attributes_and_span_id(self, exporter):
        with (
            operation_context("search"),
            create_span("search.query", attributes={"search.limit": 5, "x": None}) as span,
        ):
            span_id = format(span.get_span_context().span_id, "016x")
            assert get_trace_context()["span_id"] == span_id

        (finished,) = exporter.get_finished_spans()
        assert finished.name == "search.query"
        assert finished.attributes["search.limit"] == 5
        assert "x" not in finished.attributes

    def test_marks_failures(self, exporter):
        with pytest.raises(RuntimeError), create_span("search.load_index"):
            raise RuntimeError("boom")

        (finished,) = exporter.get_finished_spans()
        assert finished.status.status_code == StatusCode.ERROR


@pytest.mark.unit
def test_configure_logging_installs_a_single_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("debug", json_output=True, logger_levels={"sapa_search.search": "warning"})
        configure_logging("debug", json_output=True)

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("sapa_search.search").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger("sapa_search.search").setLevel(logging.NOTSET)
