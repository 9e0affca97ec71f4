"""Tests for global error capture, deduplication and rate limiting."""

from __future__ import annotations

import asyncio
import sys
import threading

import pytest
from conftest import RecordingTransport

from vigil.core.capture import ErrorHandler, HandlerState
from vigil.core.config import ErrorHandlerConfig, EventLoggerConfig
from vigil.core.exceptions import LifecycleError
from vigil.core.models import ErrorCategory, ErrorSeverity, ErrorSource, LogKind, LogLevel
from vigil.core.telemetry import EventLogger


def _raise(message: str = "cannot load hosts") -> None:
    raise RuntimeError(message)


def _capture(handler: ErrorHandler, message: str = "cannot load hosts", source=ErrorSource.GLOBAL):
    try:
        _raise(message)
    except RuntimeError as exc:
        return handler.handle_error(exc, {"route": "/hosts"}, source)


def _error_events(event_logger: EventLogger):
    return [event for event in event_logger.pending_events() if event.kind is LogKind.ERROR]


@pytest.fixture
def handler(event_logger: EventLogger, metrics) -> ErrorHandler:
    instance = ErrorHandler(event_logger, ErrorHandlerConfig(enable_global_handlers=False), metrics=metrics)
    instance.initialize()
    yield instance
    instance.destroy()


class TestDeduplication:
    def test_repeated_error_updates_one_record(self, handler: ErrorHandler, event_logger: EventLogger) -> None:
        records = [_capture(handler) for _ in range(50)]

        assert len({record.fingerprint for record in records}) == 1
        record = handler.get(records[0].fingerprint)
        assert record.occurrence_count == 50
        assert record.first_seen_ms <= record.last_seen_ms
        assert len(handler.captured()) == 1

        emitted = _error_events(event_logger)
        assert [event.context.extra["occurrence_count"] for event in emitted] == [1, 10]

    def test_emits_at_powers_of_base(self, handler: ErrorHandler, event_logger: EventLogger) -> None:
        for _ in range(100):
            _capture(handler)

        assert [event.context.extra["occurrence_count"] for event in _error_events(event_logger)] == [1, 10, 100]

    def test_emitted_event_carries_classification(self, handler: ErrorHandler, event_logger: EventLogger) -> None:
        record = _capture(handler, "network connection reset")

        (event,) = _error_events(event_logger)
        assert event.name == "network connection reset"
        assert event.context.route == "/hosts"
        assert event.context.source == "global"
        assert event.context.category == ErrorCategory.NETWORK.value
        assert event.context.extra["fingerprint"] == record.fingerprint
        assert event.context.extra["error_type"] == "RuntimeError"

    def test_source_is_part_of_the_fingerprint(self, handler: ErrorHandler) -> None:
        first = _capture(handler, source=ErrorSource.GLOBAL)
        second = _capture(handler, source=ErrorSource.PROMISE)

        assert first.fingerprint != second.fingerprint

    def test_string_errors_are_recorded_as_handled(self, handler: ErrorHandler) -> None:
        record = handler.handle_error("widget failed to render", source="react")

        assert record.error.type == "HandledError"
        assert record.error.message == "widget failed to render"
        assert record.source is ErrorSource.REACT

    def test_capacity_evicts_least_recently_seen(self, event_logger: EventLogger, metrics) -> None:
        handler = ErrorHandler(event_logger, ErrorHandlerConfig(enable_global_handlers=False, capacity=2), metrics=metrics)
        handler.initialize()

        first = _capture(handler, "first")
        second = _capture(handler, "second")
        _capture(handler, "first")
        third = _capture(handler, "third")

        assert handler.get(second.fingerprint) is None
        assert [record.fingerprint for record in handler.captured()] == [first.fingerprint, third.fingerprint]
        assert handler.get(first.fingerprint).occurrence_count == 2

    def test_critical_errors_are_logged_at_critical_level(
        self, handler: ErrorHandler, event_logger: EventLogger
    ) -> None:
        class UpstreamError(Exception):
            status_code = 503

        handler.handle_error(UpstreamError("upstream unavailable"))

        (event,) = _error_events(event_logger)
        assert event.level is LogLevel.CRITICAL
        assert event.context.severity == ErrorSeverity.CRITICAL.value

    def test_stats_aggregate_occurrences(self, handler: ErrorHandler) -> None:
        for _ in range(3):
            _capture(handler)
        handler.capture_boundary_error(ValueError("invalid input"), {"component": "HostForm"})

        stats = handler.get_stats()

        assert stats["distinct"] == 2
        assert stats["total"] == 4
        assert stats["by_source"] == {"global": 3, "react": 1}
        assert stats["by_category"]["validation"] == 1


class TestRobustness:
    def test_handle_error_never_raises(self, handler: ErrorHandler) -> None:
        class Unprintable(Exception):
            def __str__(self) -> str:
                raise RuntimeError("cannot render")

        assert handler.handle_error(Unprintable()) is None

    def test_noop_before_initialize(self, event_logger: EventLogger, metrics) -> None:
        handler = ErrorHandler(event_logger, ErrorHandlerConfig(enable_global_handlers=False), metrics=metrics)

        assert handler.handle_error(RuntimeError("early")) is None
        assert handler.captured() == []

    def test_noop_after_destroy_and_no_restart(self, handler: ErrorHandler) -> None:
        handler.destroy()
        handler.destroy()

        assert handler.state is HandlerState.STOPPED
        assert _capture(handler) is None
        with pytest.raises(LifecycleError):
            handler.initialize()


class TestGlobalHooks:
    def test_sys_excepthook_is_chained_and_restored(self, event_logger: EventLogger, metrics, monkeypatch) -> None:
        seen: list[BaseException] = []

        def previous(exc_type, exc, tb) -> None:
            seen.append(exc)

        monkeypatch.setattr(sys, "excepthook", previous)
        handler = ErrorHandler(event_logger, metrics=metrics)
        handler.initialize()
        assert sys.excepthook is not previous

        error = KeyError("missing")
        sys.excepthook(KeyError, error, None)

        assert seen == [error]
        assert handler.captured()[0].source is ErrorSource.GLOBAL
        handler.destroy()
        assert sys.excepthook is previous

    def test_thread_exceptions_are_captured(self, event_logger: EventLogger, metrics, monkeypatch) -> None:
        monkeypatch.setattr(threading, "excepthook", lambda args: None)
        handler = ErrorHandler(event_logger, metrics=metrics)
        handler.initialize()

        worker = threading.Thread(target=_raise, args=("worker crashed",), name="poller")
        worker.start()
        worker.join()

        (record,) = handler.captured()
        assert record.error.message == "worker crashed"
        assert record.context["thread"] == "poller"
        handler.destroy()

    @pytest.mark.asyncio
    async def test_thread_exception_wakes_running_logger(self, metrics, monkeypatch) -> None:
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)
        monkeypatch.setattr(threading, "excepthook", lambda args: None)
        transport = RecordingTransport()
        event_logger = EventLogger(
            EventLoggerConfig(flush_interval=30, max_batch_size=4, console_echo=False),
            transport=transport,
            metrics=metrics,
        )
        await event_logger.initialize()
        handler = ErrorHandler(event_logger, metrics=metrics)
        handler.initialize()
        event_logger.track_action("before_crash")

        worker = threading.Thread(target=_raise, args=("worker crashed",), name="poller")
        worker.start()
        worker.join()
        await asyncio.sleep(0.05)

        kinds = [event.kind for event in transport.delivered]
        assert LogKind.ERROR in kinds
        handler.destroy()
        await event_logger.destroy()

    @pytest.mark.asyncio
    async def test_loop_exceptions_are_captured_as_promise(
        self, event_logger: EventLogger, metrics, monkeypatch
    ) -> None:
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)
        monkeypatch.setattr(threading, "excepthook", threading.excepthook)
        loop = asyncio.get_running_loop()
        previous = loop.get_exception_handler()
        handler = ErrorHandler(event_logger, metrics=metrics)
        handler.initialize()

        loop.call_exception_handler({"message": "Task exception was never retrieved", "exception": ValueError("boom")})

        (record,) = handler.captured()
        assert record.source is ErrorSource.PROMISE
        assert record.error.message == "boom"
        handler.destroy()
        assert loop.get_exception_handler() is previous


class TestUserNotices:
    def test_new_errors_queue_notices(self, handler: ErrorHandler) -> None:
        _capture(handler, "network connection reset")
        _capture(handler, "network connection reset")

        (notice,) = handler.user_notices()
        assert notice.title == "Connection Problem"
        assert notice.action == "Retry"
        assert handler.pop_user_notice() == notice
        assert handler.pop_user_notice() is None

    def test_low_severity_is_silent_in_production(self, event_logger: EventLogger, metrics) -> None:
        handler = ErrorHandler(
            event_logger,
            ErrorHandlerConfig(enable_global_handlers=False),
            environment="production",
            metrics=metrics,
        )
        handler.initialize()

        handler.handle_error(ValueError("validation failed for port"))

        assert handler.user_notices() == []
