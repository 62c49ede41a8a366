"""Observability helpers: structured logging, log correlation and tracing spans."""

from sapa_search.observability.context import get_trace_context, operation_context, update_span_id
from sapa_search.observability.logging import JsonFormatter, configure_logging
from sapa_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "operation_context",
    "update_span_id",
]
