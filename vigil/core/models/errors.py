"""Captured error models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from vigil.core.models.events import Scalar


class ErrorSource(str, Enum):
    """Where an error was captured."""

    GLOBAL = "global"
    REACT = "react"
    PROMISE = "promise"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    RUNTIME = "runtime"
    RESOURCE = "resource"
    THIRD_PARTY = "third_party"
    UNKNOWN = "unknown"


class ErrorInfo(BaseModel):
    """Normalised description of an exception."""

    model_config = ConfigDict(frozen=True)

    type: str
    message: str
    stack: str | None = None


class CapturedError(BaseModel):
    """Deduplication record for one fingerprint.

    Repeats of the same fingerprint update ``occurrence_count`` and
    ``last_seen_ms`` in place instead of creating new records.
    """

    fingerprint: str
    error: ErrorInfo
    context: dict[str, Scalar] = Field(default_factory=dict)
    source: ErrorSource
    occurrence_count: int = 1
    first_seen_ms: int
    last_seen_ms: int
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    category: ErrorCategory = ErrorCategory.UNKNOWN


class UserNotice(BaseModel):
    """User-facing description of an error, queued for the UI layer."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    action: str | None = None
    severity: ErrorSeverity
    category: ErrorCategory
