"""Observability: structured logging, Prometheus/OpenTelemetry metrics and tracing."""

from hise_mcp_server.observability.context import get_trace_context, set_trace_context, trace_context
from hise_mcp_server.observability.logging import JsonFormatter, configure_logging
from hise_mcp_server.observability.metrics import (
    INDEX_ENTRY_COUNT,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SEARCH_LATENCY,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from hise_mcp_server.observability.tracing import TraceContextMiddleware, create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_ENTRY_COUNT",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "TraceContextMiddleware",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
