"""Data models for health snapshots, telemetry events and captured errors."""

from vigil.core.models.errors import (
    CapturedError,
    ErrorCategory,
    ErrorInfo,
    ErrorSeverity,
    ErrorSource,
    UserNotice,
)
from vigil.core.models.events import (
    WELL_KNOWN_KEYS,
    EventContext,
    LogEvent,
    LogKind,
    LogLevel,
    Scalar,
    coerce_scalar,
)
from vigil.core.models.health import (
    CheckOutcome,
    CheckStatus,
    HealthCheckResult,
    HealthStatus,
    OverallStatus,
)

__all__ = [
    "CapturedError",
    "ErrorCategory",
    "ErrorInfo",
    "ErrorSeverity",
    "ErrorSource",
    "UserNotice",
    "WELL_KNOWN_KEYS",
    "EventContext",
    "LogEvent",
    "LogKind",
    "LogLevel",
    "Scalar",
    "coerce_scalar",
    "CheckOutcome",
    "CheckStatus",
    "HealthCheckResult",
    "HealthStatus",
    "OverallStatus",
]
