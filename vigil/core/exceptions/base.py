"""vigil core exception classes."""

from typing import Any


class VigilError(Exception):
    """Base exception for the observability core."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        """Initialise the exception.

        Args:
            message: Human readable message
            error_code: Stable machine readable code
            details: Additional details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class LifecycleError(VigilError):
    """Operation invoked in a lifecycle state that does not allow it."""

    def __init__(
        self,
        message: str,
        component: str,
        state: str,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.update({"component": component, "state": state})
        super().__init__(message, "LIFECYCLE_ERROR", super_details)
        self.component = component
        self.state = state


class TransportError(VigilError):
    """Sending a batch of events failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if status_code is not None:
            super_details["status_code"] = status_code
        super().__init__(message, "TRANSPORT_ERROR", super_details)
        self.status_code = status_code


class StorageError(VigilError):
    """Durable store could not be read or written."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if path:
            super_details["path"] = path
        super().__init__(message, "STORAGE_ERROR", super_details)


class CheckTimeoutError(VigilError):
    """A health check did not settle within its timeout."""

    def __init__(
        self,
        check_name: str,
        timeout: float,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.update({"check": check_name, "timeout": timeout})
        super().__init__(
            f"Health check '{check_name}' timed out after {timeout:g}s",
            "CHECK_TIMEOUT",
            super_details,
        )
        self.check_name = check_name
        self.timeout = timeout
