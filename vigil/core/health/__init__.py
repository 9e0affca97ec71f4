"""Health monitoring and status checking."""

from vigil.core.health.checks import (
    HealthCheck,
    HttpEndpointCheck,
    TcpConnectCheck,
    default_checks,
    normalize_outcome,
)
from vigil.core.health.monitor import HealthMonitor, MonitorState, RegisteredCheck, aggregate_status

__all__ = [
    "HealthCheck",
    "HealthMonitor",
    "HttpEndpointCheck",
    "MonitorState",
    "RegisteredCheck",
    "TcpConnectCheck",
    "aggregate_status",
    "default_checks",
    "normalize_outcome",
]
