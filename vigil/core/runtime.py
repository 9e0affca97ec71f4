"""Explicit context object owning the observability components."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from vigil.core.capture import ErrorHandler, ErrorRecovery
from vigil.core.config import VigilConfig
from vigil.core.health import HealthCheck, HealthMonitor, default_checks
from vigil.core.logging import configure_logging, logger
from vigil.core.monitoring import TelemetryMetrics, get_metrics
from vigil.core.telemetry import (
    DurableStore,
    EventLogger,
    HttpTransport,
    JsonLinesStore,
    NullTransport,
    PerformanceTimer,
    Transport,
)


class Observability:
    """Builds, starts and shuts down the event logger, error handler and health monitor.

    The host constructs one instance at startup and passes it to whatever needs
    telemetry, instead of reaching for module level singletons::

        async with Observability(config, checks={"api": api_check}) as obs:
            obs.events.track_page_view("/hosts")
            status = await obs.health.check_health()
    """

    def __init__(
        self,
        config: VigilConfig | None = None,
        *,
        transport: Transport | None = None,
        store: DurableStore | None = None,
        checks: Mapping[str, HealthCheck] | None = None,
        metrics: TelemetryMetrics | None = None,
        configure_logs: bool = False,
    ) -> None:
        self.config = config or VigilConfig()
        self.metrics = metrics or get_metrics()
        if configure_logs:
            configure_logging(
                level=self.config.logging.level,
                file_output=self.config.logging.file is not None,
                file_path=self.config.logging.file,
            )

        self._owned_transport: HttpTransport | None = None
        if transport is None:
            transport = self._default_transport()

        self.events = EventLogger(
            self.config.events,
            transport=transport,
            store=store if store is not None else JsonLinesStore(self.config.events.store_path),
            metrics=self.metrics,
        )
        self.errors = ErrorHandler(
            self.events,
            self.config.errors,
            environment=self.config.environment,
            metrics=self.metrics,
        )
        self.timer = PerformanceTimer(self.events, metrics=self.metrics)
        self.health = HealthMonitor(
            self.config.health,
            event_logger=self.events,
            checks={**default_checks(self.config.health), **(checks or {})},
            version=self.config.version,
            environment=self.config.environment,
            metrics=self.metrics,
        )

    def _default_transport(self) -> Transport:
        endpoint = self.config.events.endpoint
        if not endpoint:
            return NullTransport()
        self._owned_transport = HttpTransport(
            endpoint,
            timeout=self.config.events.send_timeout,
            service_name=self.config.events.service_name,
            version=self.config.version,
            environment=self.config.environment,
        )
        return self._owned_transport

    def recovery(self, **options: Any) -> ErrorRecovery:
        """Create a retry helper reporting through this instance's error handler."""
        return ErrorRecovery(self.errors, **options)

    async def start(self) -> None:
        """Start every component; if one fails, the others are shut down again."""
        try:
            await self.events.initialize()
            self.errors.initialize()
            await self.health.initialize()
        except BaseException:
            await self.shutdown()
            raise
        logger.bind(component="observability").info(
            "Observability core started", environment=self.config.environment, version=self.config.version
        )

    async def shutdown(self) -> None:
        """Tear down in reverse order; the event logger goes last so it can ship the final events."""
        await self.health.destroy()
        self.errors.destroy()
        await self.events.destroy()
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> Observability:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()
