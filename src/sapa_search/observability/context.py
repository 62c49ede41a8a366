"""Log correlation context shared by index builds and search calls.

Each build or search runs inside an ``operation_context`` that stamps a trace id,
the current span id and free-form labels (``operation``, ``query``...) onto every
log record emitted by ``JsonFormatter``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


_operation_context: ContextVar[dict[str, object] | None] = ContextVar("sapa_search_operation", default=None)


def new_trace_id() -> str:
    return uuid4().hex


def new_span_id() -> str:
    return uuid4().hex[:16]


def get_trace_context() -> dict[str, object]:
    """Return the active context, creating a fresh trace on first access."""
    ctx = _operation_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": new_trace_id(), "span_id": new_span_id()}
        _operation_context.set(ctx)
    return ctx


def update_span_id(span_id: str) -> None:
    """Replace the span id while keeping the trace id and labels."""
    ctx = _operation_context.get() or {}
    _operation_context.set({**ctx, "span_id": span_id})


@contextmanager
def operation_context(operation: str, **labels: object) -> Iterator[dict[str, object]]:
    """Bind ``operation`` and extra labels for the duration of the block.

    The trace id of an enclosing operation is reused so a search triggered
    during a build stays on the same trace.
    """
    parent = _operation_context.get()
    trace_id = parent.get("trace_id") if parent else None
    ctx: dict[str, object] = {
        "trace_id": trace_id or new_trace_id(),
        "span_id": new_span_id(),
        "operation": operation,
        **{key: value for key, value in labels.items() if value is not None},
    }
    token = _operation_context.set(ctx)
    try:
        yield ctx
    finally:
        _operation_context.reset(token)
