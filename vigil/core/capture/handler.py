"""Global error capture with deduplication and rate-limited reporting."""

from __future__ import annotations

import asyncio
import sys
import threading
import time
from collections import OrderedDict, deque
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from vigil.core.capture.classify import build_user_notice, classify_error
from vigil.core.capture.fingerprint import compute_fingerprint, describe_error
from vigil.core.config import ErrorHandlerConfig
from vigil.core.exceptions import LifecycleError
from vigil.core.logging import logger
from vigil.core.models import (
    CapturedError,
    ErrorSeverity,
    ErrorSource,
    LogLevel,
    UserNotice,
    coerce_scalar,
)
from vigil.core.monitoring import TelemetryMetrics, get_metrics
from vigil.core.telemetry import EventLogger


class HandlerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    STOPPED = "stopped"


class ErrorHandler:
    """Captures application errors and reports each distinct one through the event logger.

    Errors are keyed by fingerprint. Repeats only bump the counters of the
    existing record; a full error event is emitted on the first occurrence and
    whenever the count reaches a power of ``rate_limit_base``.

    ``handle_error`` never raises. Before ``initialize()`` and after
    ``destroy()`` it is a no-op returning ``None``.
    """

    def __init__(
        self,
        event_logger: EventLogger,
        config: ErrorHandlerConfig | None = None,
        *,
        environment: str = "development",
        metrics: TelemetryMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.event_logger = event_logger
        self.config = config or ErrorHandlerConfig()
        self.environment = environment
        self.metrics = metrics or get_metrics()
        self._clock = clock
        self._table: OrderedDict[str, CapturedError] = OrderedDict()
        self._lock = threading.Lock()
        self._notices: deque[UserNotice] = deque(maxlen=self.config.max_user_notices)
        self._state = HandlerState.UNINITIALIZED
        self._previous_excepthook: Callable[..., Any] | None = None
        self._previous_threading_hook: Callable[..., Any] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous_loop_handler: Callable[..., Any] | None = None
        self._log = logger.bind(component="error_handler")

    @property
    def state(self) -> HandlerState:
        return self._state

    # ------------------------------------------------------------------
    # lifecycle

    def initialize(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Install the global hooks.

        Args:
            loop: Event loop whose unhandled task exceptions should be captured;
                defaults to the running loop, if any
        """
        if self._state is HandlerState.RUNNING:
            return
        if self._state is HandlerState.STOPPED:
            raise LifecycleError("ErrorHandler cannot be restarted after destroy()", "error_handler", self._state.value)

        if self.config.enable_global_handlers:
            self._install_hooks(loop)
        self._state = HandlerState.RUNNING
        self.event_logger.info(
            "Error handler initialized",
            {"global_handlers": self.config.enable_global_handlers, "capacity": self.config.capacity},
        )

    def destroy(self) -> None:
        """Remove the global hooks. Calling it again does nothing."""
        if self._state is HandlerState.STOPPED:
            return
        self._remove_hooks()
        self._state = HandlerState.STOPPED
        self._log.info("Error handler destroyed", distinct_errors=len(self._table))

    def _install_hooks(self, loop: asyncio.AbstractEventLoop | None) -> None:
        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._excepthook

        self._previous_threading_hook = threading.excepthook
        threading.excepthook = self._threading_excepthook

        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        if loop is not None:
            self._loop = loop
            self._previous_loop_handler = loop.get_exception_handler()
            loop.set_exception_handler(self._loop_exception_handler)

    def _remove_hooks(self) -> None:
        if self._previous_excepthook is not None and sys.excepthook == self._excepthook:
            sys.excepthook = self._previous_excepthook
        if self._previous_threading_hook is not None and threading.excepthook == self._threading_excepthook:
            threading.excepthook = self._previous_threading_hook
        if self._loop is not None and not self._loop.is_closed():
            if self._loop.get_exception_handler() == self._loop_exception_handler:
                self._loop.set_exception_handler(self._previous_loop_handler)
        self._previous_excepthook = None
        self._previous_threading_hook = None
        self._loop = None
        self._previous_loop_handler = None

    def _excepthook(self, exc_type: type[BaseException], exc: BaseException, tb: Any) -> None:
        self.handle_error(exc, {"hook": "sys.excepthook"}, ErrorSource.GLOBAL)
        if self._previous_excepthook is not None:
            self._previous_excepthook(exc_type, exc, tb)

    def _threading_excepthook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_value is not None:
            thread_name = args.thread.name if args.thread is not None else None
            self.handle_error(args.exc_value, {"hook": "threading.excepthook", "thread": thread_name}, ErrorSource.GLOBAL)
        if self._previous_threading_hook is not None:
            self._previous_threading_hook(args)

    def _loop_exception_handler(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception") or context.get("message", "Unhandled event loop error")
        self.handle_error(error, {"hook": "loop.exception_handler", "loop_message": context.get("message")}, ErrorSource.PROMISE)
        if self._previous_loop_handler is not None:
            self._previous_loop_handler(loop, context)
        else:
            loop.default_exception_handler(context)

    # ------------------------------------------------------------------
    # capture

    def handle_error(
        self,
        error: BaseException | str,
        context: Mapping[str, Any] | None = None,
        source: ErrorSource | str = ErrorSource.GLOBAL,
    ) -> CapturedError | None:
        """Record ``error`` and report it when the rate limit allows.

        Returns:
            The fingerprint record, or None when the handler is not running or
            recording failed
        """
        if self._state is not HandlerState.RUNNING:
            return None
        try:
            return self._record(error, context or {}, ErrorSource(source))
        except Exception:
            self._log.opt(exception=True).debug("Dropping error that could not be recorded")
            return None

    def capture_boundary_error(
        self,
        error: BaseException | str,
        component_info: Mapping[str, Any] | str | None,
        context: Mapping[str, Any] | None = None,
    ) -> CapturedError | None:
        """Entry point for errors caught by a UI component boundary."""
        details = dict(context or {})
        if isinstance(component_info, Mapping):
            details.update(component_info)
        elif component_info:
            details["component_stack"] = component_info
        return self.handle_error(error, details, ErrorSource.REACT)

    def _record(self, error: BaseException | str, context: Mapping[str, Any], source: ErrorSource) -> CapturedError:
        info, top_frame = describe_error(error)
        fingerprint = compute_fingerprint(info, top_frame, source)
        now_ms = int(self._clock() * 1000)
        exception = error if isinstance(error, BaseException) else None

        with self._lock:
            record = self._table.get(fingerprint)
            if record is not None:
                record.occurrence_count += 1
                record.last_seen_ms = now_ms
                self._table.move_to_end(fingerprint)
                is_new = False
            else:
                severity, category = classify_error(exception, info, context)
                record = CapturedError(
                    fingerprint=fingerprint,
                    error=info,
                    context={str(key): coerce_scalar(value) for key, value in context.items()},
                    source=source,
                    first_seen_ms=now_ms,
                    last_seen_ms=now_ms,
                    severity=severity,
                    category=category,
                )
                self._table[fingerprint] = record
                while len(self._table) > self.config.capacity:
                    self._table.popitem(last=False)
                is_new = True
            count = record.occurrence_count

        self.metrics.errors_captured_total.labels(source=source.value).inc()
        if self._should_emit(count):
            self._emit(record, exception, count)
        if is_new and self.config.enable_user_notices:
            notice = build_user_notice(record.severity, record.category, production=self.environment == "production")
            if notice is not None:
                self._notices.append(notice)
        return record

    def _should_emit(self, count: int) -> bool:
        base = self.config.rate_limit_base
        if count == 1 or base <= 1:
            return True
        while count % base == 0:
            count //= base
        return count == 1

    def _emit(self, record: CapturedError, exception: BaseException | None, count: int) -> None:
        details = {
            **record.context,
            "source": record.source.value,
            "category": record.category.value,
            "severity": record.severity.value,
            "fingerprint": record.fingerprint,
            "occurrence_count": count,
            "error_type": record.error.type,
            "error_message": record.error.message,
        }
        level = LogLevel.CRITICAL if record.severity is ErrorSeverity.CRITICAL else LogLevel.ERROR
        self.event_logger.error(record.error.message, exception, details, level=level)

    # ------------------------------------------------------------------
    # inspection

    def get(self, fingerprint: str) -> CapturedError | None:
        return self._table.get(fingerprint)

    def captured(self) -> list[CapturedError]:
        """Records ordered from least to most recently seen."""
        with self._lock:
            return list(self._table.values())

    def get_stats(self) -> dict[str, Any]:
        records = self.captured()
        stats: dict[str, Any] = {
            "distinct": len(records),
            "total": sum(record.occurrence_count for record in records),
            "by_source": {},
            "by_severity": {},
            "by_category": {},
        }
        for record in records:
            for key, value in (
                ("by_source", record.source.value),
                ("by_severity", record.severity.value),
                ("by_category", record.category.value),
            ):
                stats[key][value] = stats[key].get(value, 0) + record.occurrence_count
        return stats

    def user_notices(self) -> list[UserNotice]:
        return list(self._notices)

    def pop_user_notice(self) -> UserNotice | None:
        return self._notices.popleft() if self._notices else None

    def clear_user_notices(self) -> None:
        self._notices.clear()
