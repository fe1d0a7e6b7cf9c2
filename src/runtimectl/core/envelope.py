"""Uniform timed response envelope for control-plane operations."""

import time
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from runtimectl.core.encoding.json import to_jsonable
from runtimectl.core.errors import ControlPlaneError, ValidationError, WriteLockedError


@dataclass
class Timer:
    """Elapsed-time holder filled in by :func:`timed`."""

    start: float = 0.0
    elapsed: float = 0.0


@contextmanager
def timed() -> Generator[Timer]:
    """Context manager measuring elapsed wall time in seconds.

    ``elapsed`` is set on exit, including when the body raises.
    """
    timer = Timer(start=time.perf_counter())
    try:
        yield timer
    finally:
        timer.elapsed = time.perf_counter() - timer.start


def _status_for(error: Exception) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, WriteLockedError):
        return 403
    return 500


@dataclass(frozen=True)
class ResponseEnvelope:
    """Success or failure payload paired with its handling time.

    Attributes:
        result: Payload on success, None on failure.
        error: Error message on failure, None on success.
        time: Elapsed handling time in seconds.
        http_status: Status code a transport should use.
    """

    result: Any = None
    error: str | None = None
    time: float = 0.0
    http_status: int = 200

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"result": to_jsonable(self.result), "status": "ok", "time": self.time}
        return {"status": {"error": self.error}, "time": self.time}


def process_response(
    result: Any | ControlPlaneError, elapsed: float
) -> ResponseEnvelope:
    """Wrap an operation outcome into a response envelope.

    Args:
        result: Operation payload, or the ControlPlaneError it raised.
        elapsed: Handling time in seconds.
    """
    if isinstance(result, ControlPlaneError):
        return ResponseEnvelope(
            error=str(result), time=elapsed, http_status=_status_for(result)
        )
    return ResponseEnvelope(result=result, time=elapsed)
