"""Transport collaborators that deliver event batches."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx
from loguru import logger

from vigil.core.exceptions import TransportError
from vigil.core.models import LogEvent


@runtime_checkable
class Transport(Protocol):
    """Sends one batch; returns True on success."""

    async def send(self, batch: list[LogEvent]) -> bool: ...


class NullTransport:
    """Accepts and discards every batch; used when no endpoint is configured."""

    async def send(self, batch: list[LogEvent]) -> bool:
        return True


class HttpTransport:
    """Posts batches as ``{"logs": [...]}`` JSON to a collector endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 5.0,
        service_name: str = "vigil",
        version: str = "1.0.0",
        environment: str = "development",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self.service_name = service_name
        self.version = version
        self.environment = environment
        self._client = client
        self._owns_client = client is None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    def _envelope(self, batch: list[LogEvent]) -> dict:
        return {
            "service": self.service_name,
            "version": self.version,
            "environment": self.environment,
            "logs": [event.to_payload() for event in batch],
        }

    async def send(self, batch: list[LogEvent]) -> bool:
        try:
            await self._post(batch)
        except TransportError as e:
            logger.bind(component="transport").warning(
                e.message,
                endpoint=self.endpoint,
                batch_size=len(batch),
                **e.details,
            )
            return False
        return True

    async def _post(self, batch: list[LogEvent]) -> None:
        client = await self._ensure_client()
        try:
            response = await client.post(self.endpoint, json=self._envelope(batch))
        except httpx.HTTPError as e:
            raise TransportError(
                "Error sending events to collector",
                details={"error_type": type(e).__name__, "error": str(e)},
            ) from e
        if not response.is_success:
            raise TransportError("Collector rejected event batch", status_code=response.status_code)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
