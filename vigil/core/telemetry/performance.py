"""Performance measurement facade reporting through the event logger."""

import asyncio
import functools
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from vigil.core.logging import logger
from vigil.core.monitoring import TelemetryMetrics, get_metrics
from vigil.core.telemetry.event_logger import EventLogger

T = TypeVar("T")


class PerformanceTimer:
    """Times operations and emits exactly one performance event per call."""

    def __init__(self, event_logger: EventLogger, *, metrics: TelemetryMetrics | None = None):
        self.event_logger = event_logger
        self.metrics = metrics or get_metrics()

    def measure(
        self,
        name: str,
        fn: Callable[..., T],
        *args: Any,
        context: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> T:
        start_time = time.perf_counter()
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            self._report(name, start_time, context, error=e)
            raise
        self._report(name, start_time, context)
        return result

    async def measure_async(
        self,
        name: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        context: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> T:
        start_time = time.perf_counter()
        try:
            result = await fn(*args, **kwargs)
        except BaseException as e:
            self._report(name, start_time, context, error=e)
            raise
        self._report(name, start_time, context)
        return result

    def start(self, name: str, context: Mapping[str, Any] | None = None) -> Callable[[], float]:
        """Start a manual timer; calling the returned function stops it.

        Returns:
            Stop function returning the elapsed milliseconds
        """
        start_time = time.perf_counter()

        def stop() -> float:
            return self._report(name, start_time, context)

        return stop

    def timed(self, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator timing every call of a sync or async function."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                return await self.measure_async(name, func, *args, **kwargs)

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                return self.measure(name, func, *args, **kwargs)

            if asyncio.iscoroutinefunction(func):
                return async_wrapper
            return sync_wrapper

        return decorator

    def _report(
        self,
        name: str,
        start_time: float,
        context: Mapping[str, Any] | None,
        error: BaseException | None = None,
    ) -> float:
        duration_ms = (time.perf_counter() - start_time) * 1000
        details: dict[str, Any] = {**(context or {}), "succeeded": error is None}
        if error is not None:
            details["error_type"] = type(error).__name__
            details["error_message"] = str(error)
        try:
            self.metrics.operation_duration_seconds.labels(succeeded=str(error is None).lower()).observe(
                duration_ms / 1000
            )
            self.event_logger.performance(name, duration_ms, details)
        except Exception:
            logger.opt(exception=True).debug("Dropping performance measurement", metric=name)
        return duration_ms
