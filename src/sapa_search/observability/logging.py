"""Structured logging for build scripts and the search runtime.

Plain text is the default for interactive CLI runs; ``--log-json`` (or
``SAPA_SEARCH_LOG_JSON=true``) switches to one JSON object per line, stamped with
the trace id and labels of the active ``operation_context``.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import Any

import orjson

from sapa_search.observability.context import get_trace_context


TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Attributes every LogRecord carries; anything else was passed through ``extra=``.
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}
_CONTEXT_LABELS = ("operation", "query", "source")
_NOISY_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON correlated with the operation context."""

    REDACT_KEYS = frozenset({"authorization", "cookie", "password", "secret", "token"})
    MAX_MESSAGE_LEN = 2000
    MAX_FIELD_LEN = 500

    def format(self, record: logging.LogRecord) -> str:
        entry = self._base_fields(record)
        entry.update(self._context_fields())
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(self._extra_fields(record))
        return orjson.dumps(entry, default=_encode_fallback).decode("utf-8")

    def _base_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        message = record.getMessage()
        if len(message) > self.MAX_MESSAGE_LEN:
            message = message[: self.MAX_MESSAGE_LEN] + "..."
        fields: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        _, dot, component = record.name.rpartition(".")
        if dot:
            fields["component"] = component
        return fields

    @staticmethod
    def _context_fields() -> dict[str, Any]:
        ctx = get_trace_context()
        fields: dict[str, Any] = {"trace_id": ctx.get("trace_id", ""), "span_id": ctx.get("span_id", "")}
        fields.update({label: ctx[label] for label in _CONTEXT_LABELS if ctx.get(label) is not None})
        return fields

    def _extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        extras: dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if key.lower() in self.REDACT_KEYS:
                extras[key] = "[REDACTED]"
            elif isinstance(value, str) and len(value) > self.MAX_FIELD_LEN:
                extras[key] = value[: self.MAX_FIELD_LEN] + "..."
            else:
                extras[key] = value
        return extras


def _encode_fallback(value: Any) -> Any:
    """orjson ``default`` hook for values it cannot encode natively."""
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, (Path, BaseException)):
        return str(value)
    return repr(value)


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    *,
    logger_levels: dict[str, str] | None = None,
) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        level: Root level name, case-insensitive
        json_output: Use ``JsonFormatter`` instead of the plain text format
        logger_levels: Extra ``{logger name: level name}`` overrides
    """
    root = logging.getLogger()
    root.setLevel(_level_number(level))
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, name_level in (logger_levels or {}).items():
        logging.getLogger(name).setLevel(_level_number(name_level))


def _level_number(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)
