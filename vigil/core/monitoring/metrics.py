"""Prometheus metrics for the observability core."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

_STATUS_VALUES = {"pass": 0.0, "warn": 1.0, "fail": 2.0}
_OVERALL_VALUES = {"healthy": 0.0, "degraded": 1.0, "unhealthy": 2.0}


class TelemetryMetrics:
    """Collects and exposes counters for event delivery, errors and health checks."""

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.events_enqueued_total = Counter(
            "vigil_events_enqueued_total",
            "Telemetry events accepted into the queue.",
            ("kind",),
            registry=self.registry,
        )
        self.events_dropped_total = Counter(
            "vigil_events_dropped_total",
            "Telemetry events dropped because the queue was full or the logger stopped.",
            ("reason",),
            registry=self.registry,
        )
        self.events_sent_total = Counter(
            "vigil_events_sent_total",
            "Telemetry events delivered to the transport.",
            registry=self.registry,
        )
        self.events_persisted_total = Counter(
            "vigil_events_persisted_total",
            "Telemetry events written to the durable store after delivery gave up.",
            registry=self.registry,
        )
        self.flush_failures_total = Counter(
            "vigil_flush_failures_total",
            "Failed batch sends.",
            registry=self.registry,
        )
        self.errors_captured_total = Counter(
            "vigil_errors_captured_total",
            "Errors seen by the error handler, including duplicates.",
            ("source",),
            registry=self.registry,
        )
        self.operation_duration_seconds = Histogram(
            "vigil_operation_duration_seconds",
            "Duration of operations measured by the performance timer.",
            ("succeeded",),
            buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
            registry=self.registry,
        )
        self.check_duration_seconds = Histogram(
            "vigil_health_check_duration_seconds",
            "Duration of individual health checks.",
            ("check",),
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
            registry=self.registry,
        )
        self.check_status = Gauge(
            "vigil_health_check_status",
            "Latest check status (0=pass, 1=warn, 2=fail).",
            ("check",),
            registry=self.registry,
        )
        self.overall_status = Gauge(
            "vigil_health_overall_status",
            "Latest overall status (0=healthy, 1=degraded, 2=unhealthy).",
            registry=self.registry,
        )

    def record_check(self, check: str, status: str, duration_seconds: float) -> None:
        self.check_duration_seconds.labels(check=check).observe(duration_seconds)
        self.check_status.labels(check=check).set(_STATUS_VALUES.get(status, 2.0))

    def record_overall(self, overall: str) -> None:
        self.overall_status.set(_OVERALL_VALUES.get(overall, 2.0))

    def render(self) -> bytes:
        """Render metrics in Prometheus exposition format."""

        return generate_latest(self.registry)


_DEFAULT_METRICS: TelemetryMetrics | None = None


def get_metrics() -> TelemetryMetrics:
    """Return the process-wide metrics instance."""

    global _DEFAULT_METRICS
    if _DEFAULT_METRICS is None:
        _DEFAULT_METRICS = TelemetryMetrics()
    return _DEFAULT_METRICS


def configure_metrics(metrics: TelemetryMetrics | None) -> None:
    """Override the process-wide metrics instance for application wiring or tests."""

    global _DEFAULT_METRICS
    _DEFAULT_METRICS = metrics
