"""ASGI generic adapter for control-plane endpoints.

This adapter provides a framework-agnostic ASGI application that can be used
with any ASGI server (uvicorn, hypercorn, daphne) without requiring FastAPI
as a dependency.
"""

import json
import logging
from collections.abc import Callable, Coroutine
from typing import Any
from urllib.parse import parse_qs

from runtimectl.adapters.frameworks.query_params import (
    _parse_bool_param,
    _parse_lock_body,
    _parse_non_negative_int_param,
)
from runtimectl.core.api import HEALTHZ_CONTENT_TYPE, ControlPlane
from runtimectl.core.encoding.json import dumps
from runtimectl.core.envelope import ResponseEnvelope, process_response, timed
from runtimectl.core.errors import ControlPlaneError, ValidationError

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

JSON_CONTENT_TYPE = "application/json"

Handler = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Args:
        scope: ASGI scope dictionary containing request metadata.

    Returns:
        Dictionary mapping parameter names to lists of values.
        Returns empty dict if query_string is missing or empty.
    """
    query_string = scope.get("query_string", b"").decode(errors="replace")
    return parse_qs(query_string)


async def _read_json_body(receive: Receive) -> Any:
    """Read the full request body and decode it as JSON.

    Raises:
        ValidationError: If the body is empty or not valid JSON.
    """
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    body = b"".join(chunks)
    if not body:
        raise ValidationError("request body is empty")
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"request body is not valid JSON: {e}") from None


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body as string (will be encoded to bytes).
    """
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


async def _send_envelope(send: Send, envelope: ResponseEnvelope) -> None:
    await _send_response(
        send, envelope.http_status, JSON_CONTENT_TYPE, dumps(envelope.to_dict())
    )


class _ControlPlaneRoutes:
    """Route handlers bound to a ControlPlane."""

    def __init__(self, control_plane: ControlPlane) -> None:
        self.cp = control_plane

    async def telemetry(self, scope: Scope, receive: Receive, send: Send) -> None:
        params = _parse_query_params(scope)
        anonymize = _parse_bool_param(params, "anonymize")
        details_level = _parse_non_negative_int_param(params, "details_level")
        envelope = await self.cp.get_telemetry(
            anonymize=anonymize, details_level=details_level
        )
        await _send_envelope(send, envelope)

    async def metrics(self, scope: Scope, receive: Receive, send: Send) -> None:
        params = _parse_query_params(scope)
        anonymize = _parse_bool_param(params, "anonymize")
        view = await self.cp.get_metrics(anonymize=anonymize)
        await _send_response(send, 200, view.content_type, view.text)

    async def get_locks(self, scope: Scope, receive: Receive, send: Send) -> None:
        await _send_envelope(send, self.cp.get_locks())

    async def put_locks(self, scope: Scope, receive: Receive, send: Send) -> None:
        write, reason = _parse_lock_body(await _read_json_body(receive))
        await _send_envelope(send, self.cp.put_locks(write, reason))

    async def stacktrace(self, scope: Scope, receive: Receive, send: Send) -> None:
        await _send_envelope(send, self.cp.get_stacktrace())

    async def healthz(self, scope: Scope, receive: Receive, send: Send) -> None:
        await _send_response(send, 200, HEALTHZ_CONTENT_TYPE, self.cp.healthz())

    async def get_logger(self, scope: Scope, receive: Receive, send: Send) -> None:
        body = dumps(self.cp.get_logger_config())
        await _send_response(send, 200, JSON_CONTENT_TYPE, body)

    async def put_logger(self, scope: Scope, receive: Receive, send: Send) -> None:
        diff = await _read_json_body(receive)
        if not isinstance(diff, dict):
            raise ValidationError("expected a JSON object")
        await _send_envelope(send, self.cp.put_logger_config(diff))

    def table(self) -> dict[str, dict[str, Handler]]:
        return {
            "/telemetry": {"GET": self.telemetry},
            "/metrics": {"GET": self.metrics},
            "/locks": {"GET": self.get_locks, "POST": self.put_locks},
            "/stacktrace": {"GET": self.stacktrace},
            "/healthz": {"GET": self.healthz},
            "/livez": {"GET": self.healthz},
            "/readyz": {"GET": self.healthz},
            "/logger": {"GET": self.get_logger, "POST": self.put_logger},
        }


def create_asgi_app(control_plane: ControlPlane) -> ASGIApp:
    """Create an ASGI app exposing the control-plane endpoints.

    Endpoints:
        GET  /telemetry?anonymize=&details_level=
        GET  /metrics?anonymize=
        GET  /locks, POST /locks
        GET  /stacktrace
        GET  /healthz, /livez, /readyz
        GET  /logger, POST /logger

    Args:
        control_plane: ControlPlane the endpoints delegate to.

    Returns:
        ASGI application callable.
    """
    routes = _ControlPlaneRoutes(control_plane).table()

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        methods = routes.get(scope["path"])
        if methods is None:
            await _send_response(send, 404, "text/plain", "Not Found")
            return
        handler = methods.get(scope["method"])
        if handler is None:
            await _send_response(send, 405, "text/plain", "Method Not Allowed")
            return

        with timed() as timer:
            try:
                await handler(scope, receive, send)
                return
            except ControlPlaneError as e:
                error = e
            except Exception:
                logger.exception("Error handling %s %s", scope["method"], scope["path"])
                error_body = json.dumps({"status": {"error": "Internal Server Error"}})
                await _send_response(send, 500, JSON_CONTENT_TYPE, error_body)
                return
        await _send_envelope(send, process_response(error, timer.elapsed))

    return app
