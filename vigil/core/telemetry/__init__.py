"""Telemetry: event logging, delivery and performance measurement."""

from vigil.core.telemetry.event_logger import EventLogger, LoggerState
from vigil.core.telemetry.performance import PerformanceTimer
from vigil.core.telemetry.sanitize import REDACTED, sanitize_mapping, sanitize_stack
from vigil.core.telemetry.storage import DurableStore, JsonLinesStore, MemoryStore
from vigil.core.telemetry.transport import HttpTransport, NullTransport, Transport

__all__ = [
    "EventLogger",
    "LoggerState",
    "PerformanceTimer",
    "REDACTED",
    "sanitize_mapping",
    "sanitize_stack",
    "DurableStore",
    "JsonLinesStore",
    "MemoryStore",
    "HttpTransport",
    "NullTransport",
    "Transport",
]
