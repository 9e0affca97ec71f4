"""Monitoring module - Prometheus metrics."""

from vigil.core.monitoring.metrics import TelemetryMetrics, configure_metrics, get_metrics

__all__ = ["TelemetryMetrics", "configure_metrics", "get_metrics"]
