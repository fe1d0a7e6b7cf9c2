"""FastAPI adapter for control-plane endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Query, Response
from fastapi.responses import JSONResponse

from runtimectl.adapters.frameworks.query_params import _parse_lock_body
from runtimectl.core.api import HEALTHZ_CONTENT_TYPE, ControlPlane
from runtimectl.core.envelope import ResponseEnvelope, process_response, timed
from runtimectl.core.errors import ControlPlaneError


def _envelope_response(envelope: ResponseEnvelope) -> JSONResponse:
    return JSONResponse(content=envelope.to_dict(), status_code=envelope.http_status)


def create_control_plane_router(control_plane: ControlPlane) -> APIRouter:
    """Create a FastAPI router with the control-plane endpoints.

    Args:
        control_plane: ControlPlane the endpoints delegate to.

    Returns:
        APIRouter with /telemetry, /metrics, /locks, /stacktrace,
        /healthz, /livez, /readyz and /logger configured.
    """
    router = APIRouter()

    @router.get("/telemetry")
    async def telemetry(
        anonymize: bool = Query(default=False),
        details_level: int = Query(default=0),
    ) -> JSONResponse:
        """Return a structured telemetry snapshot."""
        envelope = await control_plane.get_telemetry(
            anonymize=anonymize, details_level=details_level
        )
        return _envelope_response(envelope)

    @router.get("/metrics")
    async def metrics(anonymize: bool = Query(default=False)) -> Response:
        """Return flat metrics text."""
        with timed() as timer:
            try:
                view = await control_plane.get_metrics(anonymize=anonymize)
            except ControlPlaneError as e:
                error = e
            else:
                return Response(content=view.text, media_type=view.content_type)
        return _envelope_response(process_response(error, timer.elapsed))

    @router.post("/locks")
    async def put_locks(payload: Any = Body(...)) -> JSONResponse:
        """Set the write lock and return the previous state."""
        with timed() as timer:
            try:
                write, reason = _parse_lock_body(payload)
            except ControlPlaneError as e:
                error = e
            else:
                return _envelope_response(control_plane.put_locks(write, reason))
        return _envelope_response(process_response(error, timer.elapsed))

    @router.get("/locks")
    async def get_locks() -> JSONResponse:
        return _envelope_response(control_plane.get_locks())

    @router.get("/stacktrace")
    async def get_stacktrace() -> JSONResponse:
        return _envelope_response(control_plane.get_stacktrace())

    @router.get("/healthz")
    @router.get("/livez")
    @router.get("/readyz")
    async def healthz() -> Response:
        """Kubernetes liveness and readiness probe."""
        return Response(content=control_plane.healthz(), media_type=HEALTHZ_CONTENT_TYPE)

    @router.get("/logger")
    async def get_logger_config() -> dict[str, Any]:
        return control_plane.get_logger_config()

    @router.post("/logger")
    async def update_logger_config(diff: Any = Body(...)) -> JSONResponse:
        """Apply a partial logger configuration diff."""
        return _envelope_response(control_plane.put_logger_config(diff))

    return router
