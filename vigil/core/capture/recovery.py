"""Bounded automatic retries for failing UI operations."""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from vigil.core.capture.handler import ErrorHandler
from vigil.core.models import ErrorSource
from vigil.core.patterns import BackoffConfig, ExponentialBackoff

T = TypeVar("T")


class ErrorRecovery:
    """Retries an async operation a bounded number of times.

    Every failure is reported to the error handler with source ``react``.
    Once ``max_retries`` retries have failed, ``execute`` gives up and returns
    None; ``reset()`` re-arms it.
    """

    def __init__(
        self,
        handler: ErrorHandler,
        *,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        exponential_backoff: bool = True,
        on_retry: Callable[[int], None] | None = None,
    ):
        self.handler = handler
        self.max_retries = max_retries
        self.on_retry = on_retry
        self._backoff = ExponentialBackoff(
            BackoffConfig(
                max_attempts=max_retries + 1,
                base_delay=retry_delay,
                exponential_base=2.0 if exponential_backoff else 1.0,
            )
        )
        self.retry_count = 0
        self.last_error: Exception | None = None

    @property
    def can_retry(self) -> bool:
        return self.retry_count <= self.max_retries

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        context: Mapping[str, Any] | None = None,
    ) -> T | None:
        while self.can_retry:
            try:
                result = await operation()
            except Exception as e:
                self.retry_count += 1
                self.last_error = e
                self.handler.handle_error(e, {**(context or {}), "retry_count": self.retry_count}, ErrorSource.REACT)
                if not self.can_retry:
                    break
                if self.on_retry is not None:
                    self.on_retry(self.retry_count)
                await asyncio.sleep(self._backoff.delay(self.retry_count))
                continue
            self.reset()
            return result
        return None

    def reset(self) -> None:
        self.retry_count = 0
        self.last_error = None
