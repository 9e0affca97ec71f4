"""Heuristic severity/category classification and user-facing notices."""

from collections.abc import Mapping
from typing import Any

from vigil.core.models import ErrorCategory, ErrorInfo, ErrorSeverity, UserNotice


def _status_code(error: BaseException | None) -> int | None:
    if error is None:
        return None
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_error(
    error: BaseException | None,
    info: ErrorInfo,
    context: Mapping[str, Any] | None = None,
) -> tuple[ErrorSeverity, ErrorCategory]:
    """Classify an error; later rules win, explicit context overrides everything."""
    severity = ErrorSeverity.MEDIUM
    category = ErrorCategory.UNKNOWN
    message = info.message.lower()

    if isinstance(error, (ConnectionError, TimeoutError)) or any(
        word in message for word in ("fetch", "network", "connection")
    ):
        category = ErrorCategory.NETWORK
        timed_out = isinstance(error, TimeoutError) or "timeout" in message or "timed out" in message
        severity = ErrorSeverity.HIGH if timed_out else ErrorSeverity.MEDIUM

    if any(word in message for word in ("unauthorized", "forbidden", "auth")):
        category = ErrorCategory.AUTHENTICATION
        severity = ErrorSeverity.HIGH

    if isinstance(error, PermissionError):
        category = ErrorCategory.AUTHORIZATION
        severity = ErrorSeverity.HIGH

    if any(word in message for word in ("validation", "invalid", "required")):
        category = ErrorCategory.VALIDATION
        severity = ErrorSeverity.LOW

    if isinstance(error, (AttributeError, TypeError, KeyError, IndexError)) or any(
        word in message for word in ("cannot read", "nonetype", "undefined")
    ):
        category = ErrorCategory.RUNTIME
        severity = ErrorSeverity.HIGH

    if isinstance(error, (MemoryError, RecursionError)):
        category = ErrorCategory.RESOURCE
        severity = ErrorSeverity.CRITICAL

    status = _status_code(error)
    if status is not None:
        if status >= 500:
            severity = ErrorSeverity.CRITICAL
            category = ErrorCategory.THIRD_PARTY
        elif status >= 400:
            severity = ErrorSeverity.HIGH
            if status in (401, 403):
                category = ErrorCategory.AUTHENTICATION
            elif status == 422:
                category = ErrorCategory.VALIDATION

    context = context or {}
    if context.get("severity") in _SEVERITIES:
        severity = ErrorSeverity(context["severity"])
    if context.get("category") in _CATEGORIES:
        category = ErrorCategory(context["category"])

    return severity, category


_SEVERITIES = tuple(member.value for member in ErrorSeverity)
_CATEGORIES = tuple(member.value for member in ErrorCategory)


_NOTICES: dict[ErrorCategory, tuple[str, str, str | None]] = {
    ErrorCategory.NETWORK: (
        "Connection Problem",
        "Unable to connect to our servers. Please check your internet connection and try again.",
        "Retry",
    ),
    ErrorCategory.AUTHENTICATION: (
        "Authentication Required",
        "Your session has expired. Please sign in again.",
        "Sign In",
    ),
    ErrorCategory.VALIDATION: (
        "Invalid Input",
        "Please check your input and try again.",
        None,
    ),
}


def build_user_notice(
    severity: ErrorSeverity,
    category: ErrorCategory,
    *,
    production: bool,
) -> UserNotice | None:
    """Return the notice to show for an error, or None when it should stay silent."""
    if severity is ErrorSeverity.LOW and production:
        return None

    if category in _NOTICES:
        title, message, action = _NOTICES[category]
    elif category is ErrorCategory.RUNTIME and severity is ErrorSeverity.CRITICAL:
        title, message, action = (
            "Application Error",
            "Something went wrong. The page will reload to fix the issue.",
            "Reload",
        )
    elif category is ErrorCategory.RUNTIME:
        title, message, action = (
            "Unexpected Error",
            "An unexpected error occurred. Please try refreshing the page.",
            "Refresh",
        )
    else:
        title, message, action = (
            "Something went wrong",
            "We encountered an unexpected error. Our team has been notified.",
            None,
        )
    return UserNotice(title=title, message=message, action=action, severity=severity, category=category)
