"""OpenTelemetry spans around index builds, index loads and searches.

The CLI installs an SDK tracer provider; a host application may install its own
(with exporters) before calling into the library. Spans opened with
``create_span`` also update the span id seen by the JSON log formatter.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer

from sapa_search.observability.context import update_span_id


logger = logging.getLogger(__name__)

SERVICE_NAME = "sapa-site-search"
INSTRUMENTATION_NAME = "sapa_search"

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(service_name: str = SERVICE_NAME, extra_resource: Mapping[str, str] | None = None) -> TracerProvider:
    """Install a tracer provider for ``service_name`` and reset the cached tracer."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name, **(extra_resource or {})}))
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = None
    logger.debug("Tracing initialized for %s", service_name)
    return provider


def get_tracer() -> Tracer:
    tracer = _tracer_holder["tracer"]
    if tracer is None:
        tracer = trace.get_tracer(INSTRUMENTATION_NAME)
        _tracer_holder["tracer"] = tracer
    return tracer


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Mapping[str, Any] | None = None,
) -> Iterator[Span]:
    """Run the block inside span ``name``; ``None`` attribute values are skipped.

    An exception escaping the block marks the span as failed and is re-raised.
    """
    with get_tracer().start_as_current_span(name, kind=kind, record_exception=False) as span:
        span.set_attributes({key: value for key, value in (attributes or {}).items() if value is not None})
        span_context = span.get_span_context()
        if span_context.is_valid:
            update_span_id(f"{span_context.span_id:016x}")
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, description=str(exc)))
            raise
