"""Structured JSON logging with trace correlation.

Logs always go to stderr: with the stdio transport stdout carries the MCP
protocol stream and must stay clean.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import Any

import orjson

from hise_mcp_server.observability.context import get_trace_context


PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("mcp", "sse_starlette", "httpx")


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object carrying the active trace and span ids.

    Fields passed through ``extra=`` are copied into the object; values under
    sensitive keys are replaced and long strings are clipped.
    """

    REDACT_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization"})
    MAX_MESSAGE_LEN = 2000
    MAX_EXTRA_LEN = 500

    # Attributes every LogRecord carries; anything else arrived through ``extra=``
    _RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        trace = get_trace_context()
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), self.MAX_MESSAGE_LEN),
            "trace_id": trace.get("trace_id", ""),
            "span_id": trace.get("span_id", ""),
        }
        _, dot, component = record.name.rpartition(".")
        if dot:
            entry["component"] = component
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(self._extra_fields(record))
        return orjson.dumps(entry, default=self._fallback).decode("utf-8")

    def _extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in self._RESERVED or key.startswith("_"):
                continue
            if key.lower() in self.REDACT_KEYS:
                value = "[REDACTED]"
            elif isinstance(value, str):
                value = _clip(value, self.MAX_EXTRA_LEN)
            fields[key] = value
        return fields

    @staticmethod
    def _fallback(value: Any) -> Any:
        """orjson ``default`` hook for types it cannot encode natively."""
        if isinstance(value, Path):
            return value.as_posix()
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8", errors="replace")
        if isinstance(value, (set, frozenset)):
            try:
                return sorted(value)
            except TypeError:
                return list(value)
        return repr(value)


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    access_log: bool = False,
) -> None:
    """Route all logging through a single stderr handler on the root logger.

    Args:
        level: Root log level name, case-insensitive
        json_output: Use ``JsonFormatter`` instead of the plain text format
        logger_levels: Per-logger level overrides (logger name -> level name)
        access_log: Leave uvicorn.access at the root level instead of WARNING
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_level(level))

    overrides = dict.fromkeys(_QUIET_LOGGERS, "WARNING")
    if not access_log:
        overrides["uvicorn.access"] = "WARNING"
    overrides.update(logger_levels or {})
    for name, name_level in overrides.items():
        logging.getLogger(name).setLevel(_level(name_level))
