"""
Health and metrics routes backed by an ``Observability`` instance
"""

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST

from vigil.core.exceptions import LifecycleError
from vigil.core.logging import logger
from vigil.core.models import OverallStatus
from vigil.core.runtime import Observability


def create_router(observability: Observability) -> APIRouter:
    """Build a router exposing the latest health snapshot and Prometheus metrics."""

    router = APIRouter()

    def _snapshot_response(snapshot) -> JSONResponse:
        code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if snapshot.overall is OverallStatus.UNHEALTHY
            else status.HTTP_200_OK
        )
        return JSONResponse(status_code=code, content=snapshot.model_dump(mode="json"))

    @router.get("/health")
    async def latest_health() -> JSONResponse:
        """Latest published snapshot; 503 when unhealthy or not yet available."""
        snapshot = observability.health.get_latest()
        if snapshot is None:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"overall": None, "message": "No health snapshot available"},
            )
        return _snapshot_response(snapshot)

    @router.post("/health/refresh")
    async def refresh_health() -> JSONResponse:
        """Run all checks now and return the new snapshot."""
        try:
            snapshot = await observability.health.check_health()
        except LifecycleError as e:
            logger.bind(component="web").warning("Health refresh rejected", state=e.state)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"overall": None, "message": e.message},
            )
        return _snapshot_response(snapshot)

    @router.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        return Response(content=observability.metrics.render(), media_type=CONTENT_TYPE_LATEST)

    return router
