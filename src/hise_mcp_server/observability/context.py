"""Trace correlation ids carried across async boundaries.

The active ids live in a ``ContextVar`` so each asyncio task (one per HTTP request
or tool call) sees its own pair. The JSON log formatter reads them on every record.
"""

from __future__ import annotations

from contextvars import ContextVar
import secrets


TRACE_ID_BYTES = 16
SPAN_ID_BYTES = 8

trace_context: ContextVar[dict[str, str] | None] = ContextVar("hise_trace_context", default=None)


def generate_trace_id() -> str:
    return secrets.token_hex(TRACE_ID_BYTES)


def generate_span_id() -> str:
    return secrets.token_hex(SPAN_ID_BYTES)


def get_trace_context() -> dict[str, str]:
    """Return the active ids, starting a new trace when none is set."""
    current = trace_context.get()
    if current and current.get("trace_id"):
        return current
    fresh = {"trace_id": generate_trace_id(), "span_id": (current or {}).get("span_id") or generate_span_id()}
    trace_context.set(fresh)
    return fresh


def set_trace_context(trace_id: str, span_id: str, **extra: str) -> None:
    trace_context.set({**extra, "trace_id": trace_id, "span_id": span_id})


def update_span_id(span_id: str) -> None:
    """Point the log context at a new span within the current trace."""
    trace_context.set({**get_trace_context(), "span_id": span_id})
