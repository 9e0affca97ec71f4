"""Structured event intake with batched, retried and persisted delivery."""

from __future__ import annotations

import asyncio
import threading
import time
import traceback
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from vigil.core.config import EventLoggerConfig
from vigil.core.exceptions import LifecycleError
from vigil.core.logging import SESSION_ID, logger
from vigil.core.models import EventContext, LogEvent, LogKind, LogLevel
from vigil.core.monitoring import TelemetryMetrics, get_metrics
from vigil.core.patterns import BackoffConfig, ExponentialBackoff
from vigil.core.telemetry.sanitize import sanitize_mapping, sanitize_stack
from vigil.core.telemetry.storage import DurableStore, MemoryStore
from vigil.core.telemetry.transport import NullTransport, Transport

MAX_STACK_CHARS = 4000


class LoggerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class _RetryBatch:
    events: list[LogEvent]
    attempts: int
    next_attempt_at: float


class EventLogger:
    """Queues telemetry events and ships them to a transport in batches.

    The live queue is bounded and drops its oldest events when full, so callers
    never block. Failed batches wait in a separately bounded retry buffer with
    exponential backoff; a batch that exhausts its attempts is written to the
    durable store and released from memory.

    After ``destroy()`` every intake method is a no-op that returns ``None``.
    """

    def __init__(
        self,
        config: EventLoggerConfig | None = None,
        *,
        transport: Transport | None = None,
        store: DurableStore | None = None,
        metrics: TelemetryMetrics | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or EventLoggerConfig()
        self.transport = transport or NullTransport()
        self.store = store if store is not None else MemoryStore()
        self.metrics = metrics or get_metrics()
        self._clock = clock
        self._backoff = ExponentialBackoff(
            BackoffConfig(
                max_attempts=self.config.max_attempts,
                base_delay=self.config.retry_base_delay,
                max_delay=self.config.retry_max_delay,
            )
        )
        self._min_level = LogLevel(self.config.min_level.upper())
        self._queue: deque[LogEvent] = deque(maxlen=self.config.max_queue_size)
        self._retry: deque[_RetryBatch] = deque()
        self._retry_events = 0
        self._queue_lock = threading.Lock()
        self._flush_lock = asyncio.Lock()
        self._wake: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._state = LoggerState.UNINITIALIZED
        self.dropped_count = 0
        self._log = logger.bind(component="event_logger")

    # ------------------------------------------------------------------
    # lifecycle

    @property
    def state(self) -> LoggerState:
        return self._state

    async def initialize(self) -> None:
        """Start the background flush cycle."""
        if self._state is LoggerState.RUNNING:
            return
        if self._state is LoggerState.STOPPED:
            raise LifecycleError("EventLogger cannot be restarted after destroy()", "event_logger", self._state.value)

        self._state = LoggerState.RUNNING
        self._loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        if self.config.flush_interval > 0:
            self._task = asyncio.create_task(self._run(), name="vigil-event-flush")

        self.info(
            "Event logger initialized",
            {"flush_interval": self.config.flush_interval, "max_queue_size": self.config.max_queue_size},
        )

    async def destroy(self) -> None:
        """Stop the flush cycle and make one final best-effort delivery.

        Whatever still fails to send is persisted. Calling it again does nothing.
        """
        if self._state is LoggerState.STOPPED:
            return
        self._state = LoggerState.STOPPED

        if self._wake is not None:
            self._wake.set()
        if self._task is not None:
            await self._task
            self._task = None

        async with self._flush_lock:
            await self._flush_locked(final=True)
        self._log.info("Event logger destroyed", dropped=self.dropped_count)

    async def _run(self) -> None:
        assert self._wake is not None
        while self._state is LoggerState.RUNNING:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.config.flush_interval)
            except TimeoutError:
                pass
            self._wake.clear()
            if self._state is not LoggerState.RUNNING:
                break
            try:
                await self.flush()
            except Exception:
                self._log.opt(exception=True).error("Flush cycle failed")

    # ------------------------------------------------------------------
    # intake

    def track_action(self, name: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._enqueue(LogKind.ACTION, name, context, action=name, category="user_interaction")

    def track_page_view(self, path: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._enqueue(LogKind.PAGEVIEW, path, context, route=path, action="page_view", category="navigation")

    def track_engagement(
        self, name: str, value: float | None = None, context: Mapping[str, Any] | None = None
    ) -> LogEvent | None:
        return self._enqueue(
            LogKind.ENGAGEMENT, name, context, value=value, action="engagement", category="user_engagement"
        )

    def performance(self, metric: str, value: float, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        """Record a duration or other measurement, rounded to two decimals."""
        return self._enqueue(
            LogKind.PERFORMANCE, metric, context, value=round(value, 2), action="performance_measurement"
        )

    def error(
        self,
        message: str,
        err: BaseException | None = None,
        context: Mapping[str, Any] | None = None,
        *,
        level: LogLevel = LogLevel.ERROR,
    ) -> LogEvent | None:
        details: dict[str, Any] = dict(context or {})
        if err is not None:
            details.setdefault("error_type", type(err).__name__)
            details.setdefault("error_message", str(err))
            if err.__traceback__ is not None:
                stack = "".join(traceback.format_exception(type(err), err, err.__traceback__))
                details.setdefault("stack", sanitize_stack(stack[-MAX_STACK_CHARS:]))
        return self._enqueue(LogKind.ERROR, message, details, level=level)

    def info(self, message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._enqueue(LogKind.INFO, message, context)

    def debug(self, message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._enqueue(LogKind.INFO, message, context, level=LogLevel.DEBUG)

    def warning(self, message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._enqueue(LogKind.INFO, message, context, level=LogLevel.WARNING)

    def critical(
        self, message: str, err: BaseException | None = None, context: Mapping[str, Any] | None = None
    ) -> LogEvent | None:
        return self.error(message, err, context, level=LogLevel.CRITICAL)

    def _enqueue(
        self,
        kind: LogKind,
        name: str,
        context: Mapping[str, Any] | None,
        *,
        value: float | None = None,
        level: LogLevel = LogLevel.INFO,
        **overrides: Any,
    ) -> LogEvent | None:
        if self._state is LoggerState.STOPPED:
            self.metrics.events_dropped_total.labels(reason="stopped").inc()
            return None
        if level.rank < self._min_level.rank:
            return None

        try:
            values = sanitize_mapping({"session_id": SESSION_ID, **(context or {})}, self.config.sanitize_fields)
            event = LogEvent(
                kind=kind,
                name=name,
                value=value,
                context=EventContext.from_mapping(values, **overrides),
                timestamp_ms=int(time.time() * 1000),
                level=level,
            )
        except Exception:
            self._log.opt(exception=True).debug("Discarding malformed event", event_name=name)
            return None

        with self._queue_lock:
            full = len(self._queue) == self._queue.maxlen
            if full:
                self.dropped_count += 1
            self._queue.append(event)
            queued = len(self._queue)
        if full:
            self.metrics.events_dropped_total.labels(reason="queue_full").inc()
        self.metrics.events_enqueued_total.labels(kind=kind.value).inc()

        if self.config.console_echo:
            self._log.bind(event_kind=kind.value, value=value).log(level.value, name)

        if queued >= self.config.max_batch_size:
            self._request_flush()
        return event

    def _request_flush(self) -> None:
        """Wake the flush cycle; safe to call from any thread."""
        if self._wake is None or self._loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._wake.set()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._wake.set)

    # ------------------------------------------------------------------
    # delivery

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def retry_count(self) -> int:
        """Number of events waiting in the retry buffer."""
        return self._retry_events

    def pending_events(self) -> list[LogEvent]:
        with self._queue_lock:
            return list(self._queue)

    async def flush(self) -> int:
        """Send the queued events plus any retries that are due.

        Returns:
            Number of events the transport accepted
        """
        if self._state is LoggerState.STOPPED:
            return 0
        async with self._flush_lock:
            return await self._flush_locked(final=False)

    async def _flush_locked(self, *, final: bool) -> int:
        now = self._clock()
        due = [batch for batch in self._retry if final or batch.next_attempt_at <= now]
        for batch in due:
            self._retry.remove(batch)
            self._retry_events -= len(batch.events)

        # drained before sending so a concurrent tick cannot resend these events
        with self._queue_lock:
            fresh = list(self._queue)
            self._queue.clear()

        sent = 0
        for batch in due:
            sent += await self._deliver(batch.events, batch.attempts, final=final)
        size = max(1, self.config.max_batch_size)
        for start in range(0, len(fresh), size):
            sent += await self._deliver(fresh[start : start + size], 0, final=final)
        return sent

    async def _deliver(self, events: list[LogEvent], attempts: int, *, final: bool) -> int:
        if await self._send(events):
            self.metrics.events_sent_total.inc(len(events))
            return len(events)

        attempts += 1
        self.metrics.flush_failures_total.inc()
        if final or self._backoff.exhausted(attempts):
            self._persist(events, attempts)
        else:
            self._schedule_retry(events, attempts)
        return 0

    async def _send(self, events: list[LogEvent]) -> bool:
        try:
            return bool(await asyncio.wait_for(self.transport.send(events), timeout=self.config.send_timeout))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._log.warning(
                "Event batch send failed",
                batch_size=len(events),
                error_type=type(e).__name__,
                error=str(e),
            )
            return False

    def _schedule_retry(self, events: list[LogEvent], attempts: int) -> None:
        delay = self._backoff.delay(attempts)
        self._retry.append(_RetryBatch(events, attempts, self._clock() + delay))
        self._retry_events += len(events)
        self._log.debug("Event batch scheduled for retry", batch_size=len(events), attempts=attempts, delay=delay)

        while self._retry_events > self.config.max_retry_events and self._retry:
            oldest = self._retry.popleft()
            self._retry_events -= len(oldest.events)
            self._persist(oldest.events, oldest.attempts)

    def _persist(self, events: list[LogEvent], attempts: int) -> None:
        try:
            self.store.persist(events)
        except Exception:
            self.dropped_count += len(events)
            self.metrics.events_dropped_total.labels(reason="storage").inc(len(events))
            self._log.opt(exception=True).error("Failed to persist undeliverable events", batch_size=len(events))
            return
        self.metrics.events_persisted_total.inc(len(events))
        self._log.warning("Persisted undeliverable events", batch_size=len(events), attempts=attempts)

    def replay_persisted(self) -> int:
        """Move persisted events back into the live queue.

        Only as many events as the queue has room for are replayed; the rest
        are written back to the store for a later replay.

        Returns:
            Number of events moved into the queue
        """
        if self._state is LoggerState.STOPPED:
            return 0
        try:
            events = self.store.load_persisted()
            self.store.clear()
        except Exception:
            self._log.opt(exception=True).error("Failed to replay persisted events")
            return 0

        with self._queue_lock:
            room = max(0, self.config.max_queue_size - len(self._queue))
            replayed, remainder = events[:room], events[room:]
            self._queue.extend(replayed)
            queued = len(self._queue)
        if remainder:
            self._store_back(remainder)
        self._log.info("Replayed persisted events", replayed=len(replayed), remaining=len(remainder))
        if queued >= self.config.max_batch_size:
            self._request_flush()
        return len(replayed)

    def _store_back(self, events: list[LogEvent]) -> None:
        try:
            self.store.persist(events)
        except Exception:
            self.dropped_count += len(events)
            self.metrics.events_dropped_total.labels(reason="storage").inc(len(events))
            self._log.opt(exception=True).error("Failed to store back unreplayed events", batch_size=len(events))
