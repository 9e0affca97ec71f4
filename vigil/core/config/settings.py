"""Configuration management for the observability core."""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger


@dataclass
class EventLoggerConfig:
    """Event queue, flush and delivery policy."""

    max_queue_size: int = 500
    max_batch_size: int = 10
    flush_interval: float = 30.0
    max_attempts: int = 5
    retry_base_delay: float = 1.0
    retry_max_delay: float = 60.0
    max_retry_events: int = 1000
    min_level: str = "INFO"
    console_echo: bool = True
    sanitize_fields: list[str] = field(default_factory=list)
    endpoint: str | None = None
    send_timeout: float = 5.0
    store_path: str = str(Path.home() / ".vigil" / "persisted_events.jsonl")
    service_name: str = "vigil"


@dataclass
class ErrorHandlerConfig:
    """Global error capture policy."""

    enable_global_handlers: bool = True
    capacity: int = 200
    rate_limit_base: int = 10
    enable_user_notices: bool = True
    max_user_notices: int = 50


@dataclass
class HealthMonitorConfig:
    """Health check scheduling."""

    interval: float = 30.0
    timeout: float = 10.0
    max_consecutive_failures: int = 3
    enable_self_monitoring: bool = True
    self_url: str | None = None
    api_base_url: str | None = None


@dataclass
class LoggingConfig:
    """Local structured logging."""

    level: str = "INFO"
    file: str | None = None


@dataclass
class VigilConfig:
    """Top level configuration."""

    version: str = "1.0.0"
    environment: str = "development"
    events: EventLoggerConfig = field(default_factory=EventLoggerConfig)
    errors: ErrorHandlerConfig = field(default_factory=ErrorHandlerConfig)
    health: HealthMonitorConfig = field(default_factory=HealthMonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "VigilConfig":
        """Build a configuration from a nested dictionary."""
        return cls(
            version=config_dict.get("version", "1.0.0"),
            environment=config_dict.get("environment", "development"),
            events=EventLoggerConfig(**config_dict.get("events", {})),
            errors=ErrorHandlerConfig(**config_dict.get("errors", {})),
            health=HealthMonitorConfig(**config_dict.get("health", {})),
            logging=LoggingConfig(**config_dict.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ConfigManager:
    """Loads and updates configuration stored as TOML."""

    def __init__(self, config_path: Path | None = None):
        """Initialise the manager.

        Args:
            config_path: TOML file path, defaults to ``~/.vigil/config.toml``
        """
        self.config_path = config_path or Path.home() / ".vigil" / "config.toml"
        self.config = self._load_config()

    def _load_config(self) -> VigilConfig:
        if not self.config_path.exists():
            return self._apply_env(VigilConfig().to_dict())

        try:
            with open(self.config_path, "rb") as f:
                config_dict = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Failed to load config from {self.config_path}: {e}")
            config_dict = VigilConfig().to_dict()
        return self._apply_env(config_dict)

    @staticmethod
    def _apply_env(config_dict: dict[str, Any]) -> VigilConfig:
        return VigilConfig.from_dict(deep_update(config_dict, load_config_from_env()))

    def get_config(self) -> VigilConfig:
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Deep-merge ``updates`` into the current configuration."""
        self.config = VigilConfig.from_dict(deep_update(self.config.to_dict(), updates))


def deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = deep_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


# (section, key, converter) for every VIGIL_<SECTION>_<KEY> variable
_ENV_FIELDS: list[tuple[str, str, Any]] = [
    ("events", "max_queue_size", int),
    ("events", "max_batch_size", int),
    ("events", "flush_interval", float),
    ("events", "max_attempts", int),
    ("events", "retry_base_delay", float),
    ("events", "endpoint", str),
    ("events", "store_path", str),
    ("events", "min_level", str),
    ("errors", "capacity", int),
    ("errors", "rate_limit_base", int),
    ("errors", "enable_global_handlers", _env_bool),
    ("health", "interval", float),
    ("health", "timeout", float),
    ("health", "api_base_url", str),
    ("health", "self_url", str),
    ("logging", "level", str),
    ("logging", "file", str),
]


def load_config_from_env() -> dict[str, Any]:
    """Collect configuration overrides from ``VIGIL_*`` environment variables."""
    config: dict[str, Any] = {}

    for top_level in ("version", "environment"):
        value = os.getenv(f"VIGIL_{top_level.upper()}")
        if value is not None:
            config[top_level] = value

    for section, key, convert in _ENV_FIELDS:
        value = os.getenv(f"VIGIL_{section.upper()}_{key.upper()}")
        if value is None:
            continue
        config.setdefault(section, {})[key] = convert(value)

    return config
