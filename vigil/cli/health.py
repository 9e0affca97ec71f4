"""One-shot health check command."""

from __future__ import annotations

import asyncio
import sys

import typer

from vigil.core.config import EventLoggerConfig, HealthMonitorConfig
from vigil.core.health import HealthCheck, HealthMonitor, HttpEndpointCheck
from vigil.core.models import HealthStatus, OverallStatus
from vigil.core.monitoring import TelemetryMetrics
from vigil.core.telemetry import EventLogger, MemoryStore

from .formatters import create_formatter

HEALTH_COLUMNS = ["check", "status", "duration_ms", "message"]

EXIT_CODES = {
    OverallStatus.HEALTHY: 0,
    OverallStatus.DEGRADED: 1,
    OverallStatus.UNHEALTHY: 2,
}


def register(app: typer.Typer) -> None:
    app.command("health", help="Check HTTP endpoints once and report their health.")(health_command)


def build_check(url: str, expected_status: int, timeout: float) -> HealthCheck:
    """Factory hook returning the check used for ``url``."""

    return HttpEndpointCheck(url=url, expected_status=expected_status, timeout=timeout)


async def run_checks(urls: list[str], *, expected_status: int, timeout: float) -> HealthStatus:
    metrics = TelemetryMetrics()
    events = EventLogger(
        EventLoggerConfig(flush_interval=0, console_echo=False),
        store=MemoryStore(),
        metrics=metrics,
    )
    monitor = HealthMonitor(
        HealthMonitorConfig(interval=0, timeout=timeout),
        event_logger=events,
        checks={url: build_check(url, expected_status, timeout) for url in urls},
        metrics=metrics,
    )
    await monitor.initialize()
    status = monitor.get_latest()
    await monitor.destroy()
    await events.destroy()
    assert status is not None
    return status


def health_command(
    ctx: typer.Context,
    urls: list[str] = typer.Argument(..., help="Endpoints to check."),
    timeout: float = typer.Option(5.0, "--timeout", help="Per-check timeout in seconds."),
    expected_status: int = typer.Option(200, "--expected-status", help="HTTP status that counts as passing."),
) -> None:
    """Exit code is 0 when healthy, 1 when degraded and 2 when unhealthy."""

    options = ctx.obj or {}
    formatter = create_formatter(options.get("format", "table"), no_color=options.get("no_color", False))

    status = asyncio.run(run_checks(urls, expected_status=expected_status, timeout=timeout))

    rows = [
        {
            "check": name,
            "status": result.status.value,
            "duration_ms": round(result.duration_ms, 1),
            "message": result.message,
        }
        for name, result in status.checks.items()
    ]
    formatter.render(rows, stream=sys.stdout, columns=HEALTH_COLUMNS)
    typer.echo(f"overall: {status.overall.value}", err=True)
    raise typer.Exit(code=EXIT_CODES[status.overall])
