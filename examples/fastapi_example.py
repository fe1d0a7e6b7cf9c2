"""Example FastAPI application with control-plane endpoints.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /telemetry?details_level=<n>&anonymize=<bool>  - structured telemetry
    /metrics?anonymize=<bool>                      - flat metrics text
    /locks              GET / POST                 - global write lock
    /stacktrace                                    - thread and task stacks
    /healthz, /livez, /readyz                      - liveness probes
    /logger             GET / POST                 - live logging configuration

Write lock:
    The /items endpoint consults the shared lock state before writing, so
    POST /locks {"write": true, "error_message": "maintenance"} makes it
    answer 403 until the lock is released.
"""

import logging

from fastapi import FastAPI, HTTPException

from runtimectl import (
    ControlPlane,
    InMemoryTelemetryCollector,
    LoggerConfig,
    StdlibLoggingBackend,
    WriteLockedError,
)
from runtimectl.adapters.frameworks.fastapi import create_control_plane_router

logger = logging.getLogger("example.items")

collector = InMemoryTelemetryCollector(app_name="example", version="0.1.0")
items: dict[str, str] = {}
collector.register_section(
    "collections", lambda level: {"items": {"points": len(items)}}, min_level=1
)

control_plane = ControlPlane.create(
    collector,
    StdlibLoggingBackend(),
    logger_config=LoggerConfig(log_level="INFO", loggers={"example": "DEBUG"}),
)

app = FastAPI(title="Control Plane Example")
app.include_router(create_control_plane_router(control_plane))


@app.put("/items/{key}")
async def put_item(key: str, value: str) -> dict[str, str]:
    """Store an item unless writes are locked."""
    try:
        control_plane.locks.check_write_lock()
    except WriteLockedError as e:
        collector.increment("writes_rejected_total")
        raise HTTPException(status_code=403, detail=str(e)) from e
    items[key] = value
    collector.increment("writes_total", labels={"endpoint": "items"})
    logger.debug("Stored item %s", key)
    return {key: value}
