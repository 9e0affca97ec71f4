"""Redaction of sensitive values before events leave the process."""

import re
from collections.abc import Iterable, Mapping
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "token",
        "api_key",
        "secret",
        "key",
        "auth",
        "authorization",
        "bearer",
        "credentials",
        "private_key",
        "access_token",
        "refresh_token",
        "session_token",
        "csrf_token",
        "x-api-key",
        "x-auth-token",
        "cookie",
        "credit_card",
        "ssn",
        "social_security",
        "bank_account",
        "routing_number",
    }
)

_STACK_PATTERNS = (
    (re.compile(r"file://[^\s)\"]+"), "file://[REDACTED]"),
    (re.compile(r"/Users/[^/\s)\"]+/[^/\s)\"]+"), "/Users/[REDACTED]/[REDACTED]"),
    (re.compile(r"/home/[^/\s)\"]+/[^/\s)\"]+"), "/home/[REDACTED]/[REDACTED]"),
    (re.compile(r"C:\\Users\\[^\\\s)\"]+\\[^\\\s)\"]+"), r"C:\\Users\\[REDACTED]\\[REDACTED]"),
)


def sanitize_mapping(data: Mapping[str, Any], additional_fields: Iterable[str] = ()) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive keys redacted, recursively."""
    sensitive = SENSITIVE_FIELDS | {field.lower() for field in additional_fields}
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if str(key).lower() in sensitive:
            sanitized[key] = REDACTED
        elif isinstance(value, Mapping):
            sanitized[key] = sanitize_mapping(value, additional_fields)
        else:
            sanitized[key] = value
    return sanitized


def sanitize_stack(stack: str | None) -> str | None:
    """Strip user specific path segments from a formatted traceback."""
    if not stack:
        return stack
    for pattern, replacement in _STACK_PATTERNS:
        stack = pattern.sub(replacement, stack)
    return stack
