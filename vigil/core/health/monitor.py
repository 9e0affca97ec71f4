"""Scheduled health checking with aggregated snapshots."""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from vigil.core.config import HealthMonitorConfig
from vigil.core.exceptions import CheckTimeoutError, LifecycleError
from vigil.core.health.checks import HealthCheck, normalize_outcome
from vigil.core.logging import logger
from vigil.core.models import (
    CheckOutcome,
    CheckStatus,
    HealthCheckResult,
    HealthStatus,
    OverallStatus,
)
from vigil.core.monitoring import TelemetryMetrics, get_metrics
from vigil.core.telemetry import EventLogger


class MonitorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RegisteredCheck:
    name: str
    func: HealthCheck
    timeout: float | None = None


def aggregate_status(statuses: Iterable[CheckStatus]) -> OverallStatus:
    """Any fail is unhealthy, otherwise any warn is degraded, otherwise healthy."""
    seen = set(statuses)
    if CheckStatus.FAIL in seen:
        return OverallStatus.UNHEALTHY
    if CheckStatus.WARN in seen:
        return OverallStatus.DEGRADED
    return OverallStatus.HEALTHY


def _is_async_callable(func: object) -> bool:
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(getattr(func, "__call__", None))


class HealthMonitor:
    """Runs registered checks concurrently and publishes one snapshot per cycle.

    Lifecycle is ``UNINITIALIZED -> RUNNING -> STOPPED``. Checks supplied to the
    constructor are registered by ``initialize()``. While not RUNNING,
    ``check_health`` and ``register_check`` raise ``LifecycleError`` and
    ``get_latest`` returns None.
    """

    def __init__(
        self,
        config: HealthMonitorConfig | None = None,
        *,
        event_logger: EventLogger,
        checks: Mapping[str, HealthCheck] | None = None,
        version: str = "1.0.0",
        environment: str = "development",
        metrics: TelemetryMetrics | None = None,
    ) -> None:
        self.config = config or HealthMonitorConfig()
        self.event_logger = event_logger
        self.version = version
        self.environment = environment
        self.metrics = metrics or get_metrics()
        self._initial_checks = dict(checks or {})
        self._checks: dict[str, RegisteredCheck] = {}
        self._latest: HealthStatus | None = None
        self._cycle = 0
        self._published_cycle = 0
        self._state = MonitorState.UNINITIALIZED
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self.consecutive_failures = 0
        self._log = logger.bind(component="health_monitor")

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def check_names(self) -> list[str]:
        return list(self._checks)

    # ------------------------------------------------------------------
    # lifecycle

    async def initialize(self) -> None:
        """Register the initial checks, run one cycle, then start the schedule."""
        if self._state is MonitorState.RUNNING:
            return
        if self._state is MonitorState.STOPPED:
            raise LifecycleError("HealthMonitor cannot be restarted after destroy()", "health_monitor", self._state.value)

        self._state = MonitorState.RUNNING
        for name, check in self._initial_checks.items():
            self.register_check(name, check)

        self.event_logger.info(
            "Health monitoring initialized",
            {"action": "health_monitor_init", "interval": self.config.interval, "check_count": len(self._checks)},
        )

        await self._run_cycle()
        if self._state is MonitorState.RUNNING:
            self._schedule()

    async def destroy(self) -> None:
        """Stop scheduling; an in-flight cycle finishes but is not published."""
        if self._state is MonitorState.STOPPED:
            return
        self._state = MonitorState.STOPPED
        await self._cancel_schedule()
        self._latest = None
        self._log.info("Health monitoring stopped")

    async def update_config(self, **changes: Any) -> HealthMonitorConfig:
        """Replace config fields; a running schedule restarts if the interval changed.

        Raises:
            TypeError: If a change names an unknown field
        """
        previous = self.config
        self.config = dataclasses.replace(previous, **changes)
        if self._state is MonitorState.RUNNING and self.config.interval != previous.interval:
            await self._cancel_schedule()
            self._schedule()
        self._log.info("Health monitor config updated", changes=sorted(changes))
        return self.config

    def _schedule(self) -> None:
        self._stop = asyncio.Event()
        if self.config.interval > 0:
            self._task = asyncio.create_task(self._run(self._stop, self.config.interval), name="vigil-health-monitor")

    async def _cancel_schedule(self) -> None:
        if self._stop is not None:
            self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def _run(self, stop: asyncio.Event, interval: float) -> None:
        while self._state is MonitorState.RUNNING and not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                pass
            if self._state is not MonitorState.RUNNING or stop.is_set():
                break
            await self._run_cycle()

    async def _run_cycle(self) -> None:
        try:
            await self.check_health()
        except Exception as e:
            self._log.opt(exception=True).error("Health check monitoring failed")
            self.event_logger.error("Health check monitoring failed", e, {"action": "health_monitor_error"})

    # ------------------------------------------------------------------
    # registry

    def register_check(self, name: str, check: HealthCheck, *, timeout: float | None = None) -> None:
        """Register or replace a check.

        Args:
            name: Unique check name
            check: Parameterless sync or async callable returning the outcome
            timeout: Seconds before the check counts as failed; defaults to
                the check's own ``timeout`` attribute, then the monitor default
        """
        self._require_running("register_check")
        if timeout is None:
            timeout = getattr(check, "timeout", None)
        self._checks[name] = RegisteredCheck(name=name, func=check, timeout=timeout)
        self._log.info("Health check registered", check=name)

    def unregister_check(self, name: str) -> bool:
        self._require_running("unregister_check")
        removed = self._checks.pop(name, None) is not None
        if removed:
            self._log.info("Health check removed", check=name)
        return removed

    def _require_running(self, operation: str) -> None:
        if self._state is not MonitorState.RUNNING:
            raise LifecycleError(
                f"HealthMonitor.{operation}() requires a running monitor",
                "health_monitor",
                self._state.value,
            )

    # ------------------------------------------------------------------
    # checking

    def get_latest(self) -> HealthStatus | None:
        if self._state is not MonitorState.RUNNING:
            return None
        return self._latest

    async def check_health(self) -> HealthStatus:
        """Run every check concurrently and publish the aggregated snapshot.

        Returns:
            The snapshot built by this call. It is published for
            ``get_latest`` only if the monitor is still running and no newer
            cycle has been published meanwhile.
        """
        self._require_running("check_health")
        self._cycle += 1
        cycle = self._cycle

        checks = list(self._checks.values())
        results = await asyncio.gather(*(self._run_check(check) for check in checks))
        status = HealthStatus(
            overall=aggregate_status(result.status for result in results),
            checks={check.name: result for check, result in zip(checks, results, strict=True)},
            version=self.version,
            environment=self.environment,
            timestamp_ms=int(time.time() * 1000),
        )

        if self._state is MonitorState.RUNNING and cycle > self._published_cycle:
            self._latest = status
            self._published_cycle = cycle
            self._report(status)
        return status

    async def _run_check(self, check: RegisteredCheck) -> HealthCheckResult:
        timeout = check.timeout if check.timeout is not None else self.config.timeout
        start_time = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(self._invoke(check), timeout=timeout)
        except TimeoutError:
            outcome = CheckOutcome(status=CheckStatus.FAIL, message=CheckTimeoutError(check.name, timeout).message)
        except Exception as e:
            outcome = CheckOutcome(status=CheckStatus.FAIL, message=f"Health check failed: {e}")
        duration_ms = (time.perf_counter() - start_time) * 1000

        self.metrics.record_check(check.name, outcome.status.value, duration_ms / 1000)
        return HealthCheckResult(
            status=outcome.status,
            duration_ms=duration_ms,
            timestamp_ms=int(time.time() * 1000),
            message=outcome.message,
        )

    @staticmethod
    async def _invoke(check: RegisteredCheck) -> CheckOutcome:
        if _is_async_callable(check.func):
            value = await check.func()
        else:
            value = await asyncio.to_thread(check.func)
            if inspect.isawaitable(value):
                value = await value
        return normalize_outcome(value)

    def _report(self, status: HealthStatus) -> None:
        self.metrics.record_overall(status.overall.value)
        context = {
            "action": "health_check",
            "status": status.overall.value,
            "check_count": len(status.checks),
            "failed_checks": len(status.failed_checks),
            "warned_checks": len(status.warned_checks),
        }
        if status.overall is OverallStatus.HEALTHY:
            self.event_logger.info("Health check completed", context)
        elif status.overall is OverallStatus.DEGRADED:
            self.event_logger.warning("Health check completed with warnings", context)
        else:
            self.event_logger.error("Health check failed", None, context)

        if status.overall is OverallStatus.UNHEALTHY:
            self.consecutive_failures += 1
            if self.consecutive_failures >= self.config.max_consecutive_failures:
                self.event_logger.error(
                    "Multiple consecutive health check failures",
                    None,
                    {"action": "health_check_failure", "consecutive_failures": self.consecutive_failures},
                )
        else:
            self.consecutive_failures = 0
