"""Health check data models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CheckStatus(str, Enum):
    """Result of a single health check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class OverallStatus(str, Enum):
    """Aggregated health classification."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CheckOutcome(BaseModel):
    """What a registered check reports; timing is added by the monitor."""

    model_config = ConfigDict(frozen=True)

    status: CheckStatus
    message: str | None = None


class HealthCheckResult(BaseModel):
    """Timed outcome of one check in one monitoring cycle."""

    model_config = ConfigDict(frozen=True)

    status: CheckStatus
    duration_ms: float = Field(ge=0)
    timestamp_ms: int
    message: str | None = None


class HealthStatus(BaseModel):
    """Immutable point-in-time snapshot of every registered check."""

    model_config = ConfigDict(frozen=True)

    overall: OverallStatus
    checks: dict[str, HealthCheckResult]
    version: str
    environment: str
    timestamp_ms: int

    @property
    def failed_checks(self) -> list[str]:
        return [name for name, result in self.checks.items() if result.status is CheckStatus.FAIL]

    @property
    def warned_checks(self) -> list[str]:
        return [name for name, result in self.checks.items() if result.status is CheckStatus.WARN]
