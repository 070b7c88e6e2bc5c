"""Prometheus metrics for the golden signals, mirrored into OpenTelemetry instruments.

Each metric is declared once through ``_declare``; recording on a ``DualMetric``
updates the Prometheus series scraped from ``/metrics`` and feeds the matching
OpenTelemetry instrument, created lazily on first use.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import time
from typing import TYPE_CHECKING, Any, Literal

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

MetricKind = Literal["counter", "histogram", "gauge"]

_otel_state: dict[str, Any] = {"provider": None, "meter": None}


def init_metrics(
    service_name: str = "hise-mcp-server",
    resource_attributes: dict[str, str] | None = None,
) -> MeterProvider:
    """Install the OpenTelemetry meter provider; later calls return the first one."""
    existing = _otel_state["provider"]
    if isinstance(existing, MeterProvider):
        return existing

    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = MeterProvider(resource=resource)
    otel_metrics.set_meter_provider(provider)
    _otel_state["provider"] = provider
    _otel_state["meter"] = otel_metrics.get_meter(__name__)
    return provider


def _meter() -> Any:
    if _otel_state["meter"] is None:
        init_metrics()
    return _otel_state["meter"]


@dataclass
class DualMetric:
    """One Prometheus metric plus its lazily created OpenTelemetry twin."""

    prom_metric: Counter | Histogram | Gauge
    kind: MetricKind
    name: str
    description: str
    _instrument: Any = field(default=None, init=False, repr=False)
    # Gauges reach OpenTelemetry as up/down counters, so the last value per label set is kept
    _gauge_values: dict[frozenset[tuple[str, str]], float] = field(default_factory=dict, init=False, repr=False)

    def labels(self, **labels: str) -> LabeledMetric:
        return LabeledMetric(self, labels)

    def instrument(self) -> Any:
        if self._instrument is None:
            meter = _meter()
            if self.kind == "counter":
                self._instrument = meter.create_counter(self.name, description=self.description)
            elif self.kind == "histogram":
                self._instrument = meter.create_histogram(self.name, description=self.description)
            else:
                self._instrument = meter.create_up_down_counter(self.name, description=self.description)
        return self._instrument

    def record(self, labels: dict[str, str], value: float) -> None:
        series = self.prom_metric.labels(**labels)
        if self.kind == "counter":
            series.inc(value)
            self.instrument().add(value, labels)
        elif self.kind == "histogram":
            series.observe(value)
            self.instrument().record(value, labels)
        else:
            series.set(value)
            key = frozenset(labels.items())
            delta = value - self._gauge_values.get(key, 0.0)
            self._gauge_values[key] = value
            if delta:
                self.instrument().add(delta, labels)


@dataclass(frozen=True)
class LabeledMetric:
    """A ``DualMetric`` bound to one label set."""

    metric: DualMetric
    label_values: dict[str, str]

    def inc(self, amount: float = 1.0) -> None:
        self.metric.record(self.label_values, amount)

    def observe(self, value: float) -> None:
        self.metric.record(self.label_values, value)

    def set(self, value: float) -> None:
        self.metric.record(self.label_values, value)


def _declare(
    kind: MetricKind,
    name: str,
    description: str,
    labelnames: Sequence[str],
    buckets: Sequence[float] | None = None,
) -> DualMetric:
    if kind == "counter":
        prom: Counter | Histogram | Gauge = Counter(name, description, labelnames)
    elif kind == "histogram":
        prom = Histogram(name, description, labelnames, buckets=buckets or Histogram.DEFAULT_BUCKETS)
    else:
        prom = Gauge(name, description, labelnames)
    return DualMetric(prom, kind, name, description)


REQUEST_LATENCY = _declare(
    "histogram",
    "hise_mcp_request_latency_seconds",
    "MCP tool latency in seconds",
    ["tool"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)
REQUEST_COUNT = _declare("counter", "hise_mcp_requests_total", "Total MCP tool calls", ["tool", "status"])
SEARCH_LATENCY = _declare(
    "histogram",
    "hise_search_latency_seconds",
    "Search engine latency in seconds",
    ["domain"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)
INDEX_ENTRY_COUNT = _declare("gauge", "hise_index_entry_count", "Entries in the search index", ["source"])


@contextmanager
def track_latency(histogram: DualMetric, **labels: str) -> Generator[None, None, None]:
    """Observe the wall time of the ``with`` body, including when it raises."""
    started = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - started)


def get_metrics() -> bytes:
    """Prometheus text exposition of the default registry."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
