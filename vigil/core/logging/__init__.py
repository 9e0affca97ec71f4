"""Logging utilities for monitoring and debugging."""

from vigil.core.logging.config import LogConfig
from vigil.core.logging.logger import (
    SESSION_ID,
    StructuredLogger,
    configure_logging,
    current_correlation_id,
    get_logger,
    log_context,
    logger,
)

__all__ = [
    "LogConfig",
    "SESSION_ID",
    "StructuredLogger",
    "configure_logging",
    "current_correlation_id",
    "get_logger",
    "log_context",
    "logger",
]
