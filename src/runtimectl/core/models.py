"""Core domain models for control-plane state."""

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


def freeze(value: Any) -> Any:
    """Return a deeply read-only copy of a JSON-like value.

    Mappings become ``MappingProxyType`` over fresh dicts and non-string
    sequences become tuples. Scalars are returned as-is.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): freeze(v) for k, v in value.items()})
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`: plain dicts and lists, safe to serialize."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class LockState:
    """Global write-lock flag with an attached human-readable reason.

    Attributes:
        write_locked: True when writes must be rejected.
        reason: Message reported to rejected writers. Stale when unlocked.
    """

    write_locked: bool = False
    reason: str | None = None

    @property
    def effective_reason(self) -> str | None:
        """The reason, or None when the lock is not set."""
        return self.reason if self.write_locked else None

    def to_dict(self) -> dict[str, Any]:
        return {"write": self.write_locked, "error_message": self.reason}


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Immutable point-in-time view of collector state.

    Attributes:
        details_level: Verbosity the snapshot was taken at.
        data: Deeply frozen structured payload.
        anonymized: True once identifying fields have been projected out.
        taken_at: Unix timestamp in seconds.
    """

    details_level: int
    data: Mapping[str, Any]
    anonymized: bool = False
    taken_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", freeze(self.data))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = thaw(self.data)
        return payload


@dataclass(frozen=True)
class MetricsView:
    """Flat line-oriented text projection of a telemetry snapshot."""

    lines: tuple[str, ...] = ()
    content_type: str = "text/plain; charset=utf-8"

    @property
    def text(self) -> str:
        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"


@dataclass(frozen=True)
class ThreadStackTrace:
    id: int
    name: str
    daemon: bool
    frames: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "daemon": self.daemon,
            "frames": list(self.frames),
        }


@dataclass(frozen=True)
class TaskStackTrace:
    name: str
    frames: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "frames": list(self.frames)}


@dataclass(frozen=True)
class StackTrace:
    """Diagnostic dump of every live thread and pending asyncio task."""

    threads: tuple[ThreadStackTrace, ...] = ()
    tasks: tuple[TaskStackTrace, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "threads": [t.to_dict() for t in self.threads],
            "tasks": [t.to_dict() for t in self.tasks],
        }
