"""Configuration management module."""

from vigil.core.config.settings import (
    ConfigManager,
    ErrorHandlerConfig,
    EventLoggerConfig,
    HealthMonitorConfig,
    LoggingConfig,
    VigilConfig,
    deep_update,
    load_config_from_env,
)

__all__ = [
    "ConfigManager",
    "VigilConfig",
    "EventLoggerConfig",
    "ErrorHandlerConfig",
    "HealthMonitorConfig",
    "LoggingConfig",
    "deep_update",
    "load_config_from_env",
]
