"""Check adapters and built-in checks."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

import httpx

from vigil.core.config import HealthMonitorConfig
from vigil.core.models import CheckOutcome, CheckStatus

CheckReturn = Union[CheckOutcome, Mapping[str, Any], str, bool]
HealthCheck = Callable[[], Union[CheckReturn, Awaitable[CheckReturn]]]

# overall status words are accepted as check statuses too
_STATUS_ALIASES = {
    "pass": CheckStatus.PASS,
    "ok": CheckStatus.PASS,
    "healthy": CheckStatus.PASS,
    "warn": CheckStatus.WARN,
    "warning": CheckStatus.WARN,
    "degraded": CheckStatus.WARN,
    "fail": CheckStatus.FAIL,
    "unhealthy": CheckStatus.FAIL,
}


def _parse_status(value: Any) -> CheckStatus:
    if isinstance(value, CheckStatus):
        return value
    status = _STATUS_ALIASES.get(str(value).strip().lower())
    if status is None:
        raise ValueError(f"Unknown check status: {value!r}")
    return status


def normalize_outcome(value: CheckReturn) -> CheckOutcome:
    """Coerce whatever a check returned into a ``CheckOutcome``."""
    if isinstance(value, CheckOutcome):
        return value
    if isinstance(value, bool):
        return CheckOutcome(status=CheckStatus.PASS if value else CheckStatus.FAIL)
    if isinstance(value, Mapping):
        message = value.get("message") or value.get("error")
        return CheckOutcome(status=_parse_status(value.get("status")), message=None if message is None else str(message))
    return CheckOutcome(status=_parse_status(value))


@dataclass
class HttpEndpointCheck:
    """Requests an HTTP endpoint and grades the response.

    The expected status passes, 5xx fails, anything else warns. Transport
    errors fail.
    """

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    expected_status: int = 200
    timeout: float | None = None
    client: httpx.AsyncClient | None = None

    async def __call__(self) -> CheckOutcome:
        headers = {"User-Agent": "vigil-healthcheck/1.0", **self.headers}
        try:
            if self.client is not None:
                # an unset timeout defers to the injected client's own
                options = {} if self.timeout is None else {"timeout": self.timeout}
                response = await self.client.request(self.method, self.url, headers=headers, **options)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(self.method, self.url, headers=headers)
        except httpx.TimeoutException:
            return CheckOutcome(status=CheckStatus.FAIL, message="Health check timeout")
        except httpx.HTTPError as e:
            return CheckOutcome(status=CheckStatus.FAIL, message=f"Health check failed: {e}")

        if response.status_code == self.expected_status:
            return CheckOutcome(status=CheckStatus.PASS, message=f"Health check passed ({response.status_code})")
        if response.status_code >= 500:
            return CheckOutcome(
                status=CheckStatus.FAIL,
                message=f"Server error: {response.status_code} {response.reason_phrase}",
            )
        return CheckOutcome(status=CheckStatus.WARN, message=f"Unexpected status: {response.status_code}")


@dataclass
class TcpConnectCheck:
    """Network reachability: passes when a TCP connection can be opened."""

    host: str
    port: int
    timeout: float | None = None

    async def __call__(self) -> CheckOutcome:
        try:
            _, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            return CheckOutcome(status=CheckStatus.FAIL, message=f"Cannot reach {self.host}:{self.port}: {e}")
        writer.close()
        await writer.wait_closed()
        return CheckOutcome(status=CheckStatus.PASS, message=f"Connected to {self.host}:{self.port}")


def default_checks(config: HealthMonitorConfig) -> dict[str, HealthCheck]:
    """Build the ``self`` and ``api`` endpoint checks from configuration."""
    checks: dict[str, HealthCheck] = {}
    if config.enable_self_monitoring and config.self_url:
        checks["self"] = HttpEndpointCheck(url=config.self_url, timeout=5.0)
    if config.api_base_url:
        checks["api"] = HttpEndpointCheck(url=f"{config.api_base_url.rstrip('/')}/health", timeout=5.0)
    return checks
