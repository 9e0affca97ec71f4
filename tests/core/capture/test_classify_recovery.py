"""Tests for error classification, user notices and retrying recovery."""

import httpx
import pytest

from vigil.core.capture import (
    ErrorHandler,
    ErrorRecovery,
    build_user_notice,
    classify_error,
    compute_fingerprint,
    describe_error,
)
from vigil.core.config import ErrorHandlerConfig
from vigil.core.models import ErrorCategory, ErrorSeverity, ErrorSource


def _classify(error, context=None):
    info, _ = describe_error(error)
    return classify_error(error if isinstance(error, BaseException) else None, info, context)


class TestClassification:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (ConnectionError("connection refused"), (ErrorSeverity.MEDIUM, ErrorCategory.NETWORK)),
            (TimeoutError("request timed out"), (ErrorSeverity.HIGH, ErrorCategory.NETWORK)),
            (RuntimeError("401 unauthorized"), (ErrorSeverity.HIGH, ErrorCategory.AUTHENTICATION)),
            (PermissionError("not allowed"), (ErrorSeverity.HIGH, ErrorCategory.AUTHORIZATION)),
            (ValueError("invalid port number"), (ErrorSeverity.LOW, ErrorCategory.VALIDATION)),
            (AttributeError("'NoneType' object has no attribute 'id'"), (ErrorSeverity.HIGH, ErrorCategory.RUNTIME)),
            (MemoryError(), (ErrorSeverity.CRITICAL, ErrorCategory.RESOURCE)),
            (RuntimeError("something odd"), (ErrorSeverity.MEDIUM, ErrorCategory.UNKNOWN)),
        ],
    )
    def test_heuristics(self, error, expected) -> None:
        assert _classify(error) == expected

    def test_http_status_errors(self) -> None:
        request = httpx.Request("GET", "https://api.test/hosts")
        server = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(502, request=request))
        forbidden = httpx.HTTPStatusError("nope", request=request, response=httpx.Response(403, request=request))

        assert _classify(server) == (ErrorSeverity.CRITICAL, ErrorCategory.THIRD_PARTY)
        assert _classify(forbidden) == (ErrorSeverity.HIGH, ErrorCategory.AUTHENTICATION)

    def test_context_overrides_win(self) -> None:
        result = _classify(RuntimeError("something odd"), {"severity": "critical", "category": "resource"})

        assert result == (ErrorSeverity.CRITICAL, ErrorCategory.RESOURCE)

    def test_unknown_context_values_are_ignored(self) -> None:
        result = _classify(RuntimeError("something odd"), {"severity": "apocalyptic", "category": ["x"]})

        assert result == (ErrorSeverity.MEDIUM, ErrorCategory.UNKNOWN)


class TestFingerprint:
    def test_same_error_same_frame_same_fingerprint(self) -> None:
        def fail():
            raise KeyError("host")

        prints = set()
        for _ in range(2):
            try:
                fail()
            except KeyError as exc:
                info, frame = describe_error(exc)
                prints.add(compute_fingerprint(info, frame, ErrorSource.GLOBAL))

        (fingerprint,) = prints
        assert len(fingerprint) == 16

    def test_message_changes_fingerprint(self) -> None:
        first, _ = describe_error("disk full")
        second, _ = describe_error("disk almost full")

        assert compute_fingerprint(first, "", ErrorSource.GLOBAL) != compute_fingerprint(second, "", ErrorSource.GLOBAL)


class TestUserNotice:
    def test_runtime_critical_asks_for_reload(self) -> None:
        notice = build_user_notice(ErrorSeverity.CRITICAL, ErrorCategory.RUNTIME, production=True)

        assert notice.title == "Application Error"
        assert notice.action == "Reload"

    def test_low_severity_shown_outside_production(self) -> None:
        notice = build_user_notice(ErrorSeverity.LOW, ErrorCategory.VALIDATION, production=False)

        assert notice.title == "Invalid Input"
        assert build_user_notice(ErrorSeverity.LOW, ErrorCategory.VALIDATION, production=True) is None

    def test_unknown_category_gets_generic_notice(self) -> None:
        notice = build_user_notice(ErrorSeverity.MEDIUM, ErrorCategory.UNKNOWN, production=True)

        assert notice.title == "Something went wrong"
        assert notice.action is None


@pytest.fixture
def handler(event_logger, metrics) -> ErrorHandler:
    instance = ErrorHandler(event_logger, ErrorHandlerConfig(enable_global_handlers=False), metrics=metrics)
    instance.initialize()
    return instance


class TestErrorRecovery:
    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, handler: ErrorHandler) -> None:
        attempts = 0
        retries: list[int] = []

        async def flaky() -> str:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise ConnectionError("connection reset")
            return "hosts"

        recovery = ErrorRecovery(handler, max_retries=3, retry_delay=0, on_retry=retries.append)

        assert await recovery.execute(flaky, {"component": "HostTable"}) == "hosts"
        assert attempts == 3
        assert retries == [1, 2]
        assert recovery.retry_count == 0
        (record,) = handler.captured()
        assert record.occurrence_count == 2
        assert record.source is ErrorSource.REACT

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, handler: ErrorHandler) -> None:
        attempts = 0

        async def broken() -> None:
            nonlocal attempts
            attempts += 1
            raise RuntimeError("still broken")

        recovery = ErrorRecovery(handler, max_retries=2, retry_delay=0)

        assert await recovery.execute(broken) is None
        assert attempts == 3
        assert not recovery.can_retry
        assert str(recovery.last_error) == "still broken"

        assert await recovery.execute(broken) is None
        assert attempts == 3

        recovery.reset()
        assert recovery.can_retry
        await recovery.execute(broken)
        assert attempts == 6
