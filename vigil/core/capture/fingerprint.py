"""Error normalisation and fingerprinting."""

import hashlib
import traceback

from vigil.core.models import ErrorInfo, ErrorSource
from vigil.core.telemetry.sanitize import sanitize_stack

FINGERPRINT_LENGTH = 16


def describe_error(error: BaseException | str) -> tuple[ErrorInfo, str]:
    """Normalise ``error`` and return it with its top stack frame.

    Plain strings become ``HandledError`` records without a stack.
    """
    if not isinstance(error, BaseException):
        return ErrorInfo(type="HandledError", message=str(error) or "Unknown error"), ""

    message = str(error) or type(error).__name__
    tb = error.__traceback__
    if tb is None:
        return ErrorInfo(type=type(error).__name__, message=message), ""

    stack = "".join(traceback.format_exception(type(error), error, tb))
    frames = traceback.extract_tb(tb)
    frame = frames[-1]
    top_frame = f"{frame.filename}:{frame.lineno}:{frame.name}"
    return ErrorInfo(type=type(error).__name__, message=message, stack=sanitize_stack(stack)), top_frame


def compute_fingerprint(info: ErrorInfo, top_frame: str, source: ErrorSource) -> str:
    digest = hashlib.sha1(f"{info.type}: {info.message}|{top_frame}|{source.value}".encode("utf-8"))
    return digest.hexdigest()[:FINGERPRINT_LENGTH]
