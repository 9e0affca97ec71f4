"""Observability core: health monitoring, event logging and error capture."""

from vigil.core.capture import ErrorHandler, ErrorRecovery
from vigil.core.config import VigilConfig
from vigil.core.health import HealthMonitor
from vigil.core.runtime import Observability
from vigil.core.telemetry import EventLogger, PerformanceTimer

__all__ = [
    "ErrorHandler",
    "ErrorRecovery",
    "EventLogger",
    "HealthMonitor",
    "Observability",
    "PerformanceTimer",
    "VigilConfig",
]
