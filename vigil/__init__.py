"""vigil - observability core for monitoring dashboards.

Health checks, structured telemetry with durable delivery, and global error
capture, wired together through an explicit ``Observability`` context object.
"""

from vigil.core import (
    ErrorHandler,
    ErrorRecovery,
    EventLogger,
    HealthMonitor,
    Observability,
    PerformanceTimer,
    VigilConfig,
)

__version__ = "1.0.0"

__all__ = [
    "ErrorHandler",
    "ErrorRecovery",
    "EventLogger",
    "HealthMonitor",
    "Observability",
    "PerformanceTimer",
    "VigilConfig",
    "__version__",
]
