"""Global error capture, classification and recovery."""

from vigil.core.capture.classify import build_user_notice, classify_error
from vigil.core.capture.fingerprint import compute_fingerprint, describe_error
from vigil.core.capture.handler import ErrorHandler, HandlerState
from vigil.core.capture.recovery import ErrorRecovery

__all__ = [
    "ErrorHandler",
    "HandlerState",
    "ErrorRecovery",
    "build_user_notice",
    "classify_error",
    "compute_fingerprint",
    "describe_error",
]
