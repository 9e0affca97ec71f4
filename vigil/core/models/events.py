"""Telemetry event models."""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Scalar = str | int | float | bool | None

WELL_KNOWN_KEYS = (
    "route",
    "component",
    "action",
    "category",
    "severity",
    "source",
    "session_id",
    "correlation_id",
    "user_id",
)


class LogKind(str, Enum):
    """Kind of telemetry event."""

    ACTION = "action"
    PAGEVIEW = "pageview"
    ENGAGEMENT = "engagement"
    PERFORMANCE = "performance"
    ERROR = "error"
    INFO = "info"


class LogLevel(str, Enum):
    """Severity level, ordered from least to most severe."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {level: index for index, level in enumerate(LogLevel)}


def coerce_scalar(value: Any) -> Scalar:
    """Reduce an arbitrary value to a JSON scalar."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Enum):
        return coerce_scalar(value.value)
    return str(value)


class EventContext(BaseModel):
    """Context attached to an event: well-known keys plus an open extension map."""

    model_config = ConfigDict(frozen=True)

    route: str | None = None
    component: str | None = None
    action: str | None = None
    category: str | None = None
    severity: str | None = None
    source: str | None = None
    session_id: str | None = None
    correlation_id: str | None = None
    user_id: str | None = None
    extra: dict[str, Scalar] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None = None, **overrides: Any) -> "EventContext":
        """Split a free-form mapping into well-known keys and sorted extras."""
        known: dict[str, str | None] = {}
        extra: dict[str, Scalar] = {}
        for key, value in {**(values or {}), **overrides}.items():
            if key in WELL_KNOWN_KEYS:
                scalar = coerce_scalar(value)
                known[key] = None if scalar is None else str(scalar)
            elif key == "extra" and isinstance(value, Mapping):
                extra.update({str(k): coerce_scalar(v) for k, v in value.items()})
            else:
                extra[str(key)] = coerce_scalar(value)
        return cls(**known, extra=dict(sorted(extra.items())))


class LogEvent(BaseModel):
    """One telemetry event; never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    kind: LogKind
    name: str
    value: float | None = None
    context: EventContext = Field(default_factory=EventContext)
    timestamp_ms: int
    level: LogLevel = LogLevel.INFO

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
