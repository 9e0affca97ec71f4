"""Structured logging utilities with correlation propagation."""

from __future__ import annotations

import json
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import IO, Any, Iterator
from uuid import uuid4

from loguru import logger

from vigil.core.logging.config import LogConfig

_CORRELATION_ID_VAR: ContextVar[str | None] = ContextVar("vigil_correlation_id", default=None)
_CONTEXT_VAR: ContextVar[dict[str, Any]] = ContextVar("vigil_log_context", default={})

# one id per process, shared by every record and telemetry event
SESSION_ID = f"session_{uuid4().hex[:12]}"

_PROMOTED_KEYS = ("correlation_id", "session_id", "component")


def _ensure_correlation_id() -> str:
    correlation_id = _CORRELATION_ID_VAR.get()
    if correlation_id is None:
        correlation_id = uuid4().hex
        _CORRELATION_ID_VAR.set(correlation_id)
    return correlation_id


def _patch_record(record: dict[str, Any]) -> None:
    extra = record["extra"]
    if not extra.get("correlation_id"):
        extra["correlation_id"] = _ensure_correlation_id()
    extra.setdefault("session_id", SESSION_ID)

    for key, value in _CONTEXT_VAR.get({}).items():
        extra.setdefault(key, value)
    extra.setdefault("component", None)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _format_payload(record: dict[str, Any]) -> dict[str, Any]:
    extra = record.get("extra", {})
    context = {k: v for k, v in extra.items() if k not in _PROMOTED_KEYS}
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "correlation_id": extra.get("correlation_id"),
        "session_id": extra.get("session_id"),
        "component": extra.get("component"),
    }
    if context:
        payload["context"] = context
    exception = record.get("exception")
    if exception:
        payload["exception"] = f"{exception.type.__name__}: {exception.value}" if exception.type else str(exception)
    return payload


class _StreamJsonSink:
    """Sink writing structured JSON payloads to a text stream."""

    def __init__(self, stream: IO[str]) -> None:
        self._stream = stream

    def __call__(self, message: Any) -> None:
        payload = _format_payload(message.record)
        self._stream.write(json.dumps(payload, default=_json_default))
        self._stream.write("\n")
        self._stream.flush()


class _FileJsonSink:
    """Sink appending JSON lines to a file path."""

    def __init__(self, path: str) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._path = path

    def __call__(self, message: Any) -> None:
        payload = _format_payload(message.record)
        with open(self._path, "a", encoding="utf-8") as file:
            file.write(json.dumps(payload, default=_json_default))
            file.write("\n")


def _configure_from_config(config: LogConfig) -> None:
    handlers: list[dict[str, Any]] = []
    if config.console_output:
        stream = config.console_stream or sys.stderr
        handlers.append({"sink": _StreamJsonSink(stream), "level": config.level, "catch": True})
    if config.file_output and config.file_path:
        handlers.append({"sink": _FileJsonSink(config.file_path), "level": config.level, "catch": True})

    logger.configure(handlers=handlers, patcher=_patch_record, extra=config.extra or {})


def configure_logging(level: str = "INFO", **kwargs: Any) -> None:
    """Configure structured logging with the provided level and options."""

    _configure_from_config(LogConfig(level=level, **kwargs))


class StructuredLogger:
    """Wrapper exposing the configured loguru logger with context helpers."""

    def __init__(self, config: LogConfig | None = None) -> None:
        self.config = config or LogConfig()
        _configure_from_config(self.config)
        self.logger = logger

    def configure(self, **kwargs: Any) -> None:
        """Update logger configuration at runtime."""

        self.config = self.config.model_copy(update=kwargs)
        _configure_from_config(self.config)

    @contextmanager
    def context(self, *, correlation_id: str | None = None, **extra: Any) -> Iterator[str]:
        with log_context(correlation_id=correlation_id, **extra) as active:
            yield active


def get_logger(component: str | None = None) -> Any:
    """Return the logger, bound to ``component`` when given."""

    if component:
        return logger.bind(component=component)
    return logger


@contextmanager
def log_context(*, correlation_id: str | None = None, **extra: Any) -> Iterator[str]:
    """Propagate a correlation id and extra metadata to nested log records."""

    previous_context = _CONTEXT_VAR.get({})
    context_token = _CONTEXT_VAR.set({**previous_context, **extra})

    active = correlation_id or uuid4().hex
    correlation_token = _CORRELATION_ID_VAR.set(active)

    try:
        yield active
    finally:
        _CORRELATION_ID_VAR.reset(correlation_token)
        _CONTEXT_VAR.reset(context_token)


def current_correlation_id() -> str:
    """Return the active correlation id, generating one if required."""

    return _ensure_correlation_id()


configure_logging()


__all__ = [
    "SESSION_ID",
    "StructuredLogger",
    "configure_logging",
    "current_correlation_id",
    "get_logger",
    "log_context",
    "logger",
]
