"""OpenTelemetry tracing helpers and HTTP trace-context middleware."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from hise_mcp_server.observability.context import generate_span_id, get_trace_context, set_trace_context, update_span_id


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

TRACE_HEADER = b"x-trace-id"

_tracer: dict[str, Tracer] = {}


def init_tracing(
    service_name: str = "hise-mcp-server",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Install a tracer provider for this process.

    No span exporter is attached; spans still carry ids that the JSON log
    formatter stamps on every record.
    """
    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    _tracer["default"] = trace.get_tracer(__name__)
    logger.debug("Tracing initialized for service: %s", service_name)
    return provider


def get_tracer() -> Tracer:
    if "default" not in _tracer:
        _tracer["default"] = trace.get_tracer(__name__)
    return _tracer["default"]


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Open a span, publish its id to the log context, and mark it failed on error."""
    with get_tracer().start_as_current_span(
        name,
        kind=kind,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            update_span_id(format(span_context.span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, f"{type(exc).__name__}: {exc}"))
            raise


class TraceContextMiddleware:
    """ASGI middleware that starts a fresh log context for every HTTP request.

    An ``x-trace-id`` request header, when present, is reused as the trace id so
    callers can correlate their own logs with ours.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] == "http":
            incoming = next((value for key, value in scope.get("headers", ()) if key.lower() == TRACE_HEADER), b"")
            trace_id = incoming.decode("latin-1").strip() or get_trace_context()["trace_id"]
            set_trace_context(trace_id, generate_span_id())
        await self.app(scope, receive, send)
