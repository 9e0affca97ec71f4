"""Pytest configuration for the vigil test suite."""

from __future__ import annotations

import io
from collections.abc import Iterator

import pytest
from prometheus_client import CollectorRegistry

from vigil.core.config import EventLoggerConfig
from vigil.core.logging import configure_logging
from vigil.core.models import LogEvent
from vigil.core.monitoring import TelemetryMetrics, configure_metrics
from vigil.core.telemetry import EventLogger, MemoryStore


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--vigil-run-integration",
        action="store_true",
        default=False,
        help="Run vigil integration tests that require network access.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--vigil-run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="integration tests require --vigil-run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def isolated_observability() -> Iterator[io.StringIO]:
    """Fresh log sink and metrics registry for every test."""

    buffer = io.StringIO()
    configure_logging(level="DEBUG", console_stream=buffer)
    configure_metrics(TelemetryMetrics(registry=CollectorRegistry()))
    yield buffer
    configure_metrics(None)


class RecordingTransport:
    """Transport double recording batches and failing on demand."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.batches: list[list[LogEvent]] = []
        self.calls = 0

    async def send(self, batch: list[LogEvent]) -> bool:
        self.calls += 1
        if self.fail:
            return False
        self.batches.append(list(batch))
        return True

    @property
    def delivered(self) -> list[LogEvent]:
        return [event for batch in self.batches for event in batch]


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def metrics() -> TelemetryMetrics:
    return TelemetryMetrics(registry=CollectorRegistry())


@pytest.fixture
def event_logger(transport: RecordingTransport, store: MemoryStore, metrics: TelemetryMetrics) -> EventLogger:
    """Logger without a background flush task; tests drive ``flush()`` directly."""

    return EventLogger(
        EventLoggerConfig(flush_interval=0, console_echo=False, min_level="DEBUG"),
        transport=transport,
        store=store,
        metrics=metrics,
    )
