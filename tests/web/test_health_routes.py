"""Tests for the health and metrics routes."""

from __future__ import annotations

from contextlib import asynccontextmanager

from conftest import RecordingTransport
from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import CONTENT_TYPE_LATEST

from vigil.core.config import ErrorHandlerConfig, EventLoggerConfig, HealthMonitorConfig, VigilConfig
from vigil.core.runtime import Observability
from vigil.core.telemetry import MemoryStore
from vigil.web import create_router


def _observability(metrics, checks) -> Observability:
    config = VigilConfig(
        version="3.0.0",
        environment="test",
        events=EventLoggerConfig(flush_interval=0, console_echo=False),
        errors=ErrorHandlerConfig(enable_global_handlers=False),
        health=HealthMonitorConfig(interval=0),
    )
    return Observability(config, transport=RecordingTransport(), store=MemoryStore(), checks=checks, metrics=metrics)


def _app(observability: Observability) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with observability:
            yield

    app = FastAPI(lifespan=lifespan)
    app.include_router(create_router(observability))
    return app


def test_latest_snapshot_is_served(metrics) -> None:
    observability = _observability(metrics, {"database": lambda: True, "cache": lambda: "warn"})

    with TestClient(_app(observability)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["overall"] == "degraded"
    assert body["version"] == "3.0.0"
    assert body["environment"] == "test"
    assert body["checks"]["database"]["status"] == "pass"
    assert body["checks"]["cache"]["status"] == "warn"


def test_unhealthy_snapshot_returns_503(metrics) -> None:
    observability = _observability(metrics, {"api": lambda: False})

    with TestClient(_app(observability)) as client:
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["overall"] == "unhealthy"


def test_missing_snapshot_returns_503(metrics) -> None:
    observability = _observability(metrics, {"api": lambda: True})
    app = FastAPI()
    app.include_router(create_router(observability))

    response = TestClient(app).get("/health")

    assert response.status_code == 503
    assert response.json() == {"overall": None, "message": "No health snapshot available"}


def test_refresh_runs_checks_again(metrics) -> None:
    state = {"healthy": False}
    observability = _observability(metrics, {"api": lambda: state["healthy"]})

    with TestClient(_app(observability)) as client:
        assert client.get("/health").status_code == 503
        state["healthy"] = True
        refreshed = client.post("/health/refresh")
        latest = client.get("/health")

    assert refreshed.status_code == 200
    assert refreshed.json()["overall"] == "healthy"
    assert latest.json()["timestamp_ms"] == refreshed.json()["timestamp_ms"]


def test_refresh_rejected_when_monitor_not_running(metrics) -> None:
    observability = _observability(metrics, {"api": lambda: True})
    app = FastAPI()
    app.include_router(create_router(observability))

    response = TestClient(app).post("/health/refresh")

    assert response.status_code == 503
    assert "requires a running monitor" in response.json()["message"]


def test_metrics_endpoint_exposes_prometheus_payload(metrics) -> None:
    observability = _observability(metrics, {"api": lambda: True})

    with TestClient(_app(observability)) as client:
        response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"] == CONTENT_TYPE_LATEST
    assert 'vigil_health_check_status{check="api"} 0.0' in response.text
    assert "vigil_events_enqueued_total" in response.text
