"""Administrative control plane: telemetry, write locks and live logging config."""

from runtimectl.adapters.logging import StdlibLoggingBackend
from runtimectl.adapters.telemetry import InMemoryTelemetryCollector
from runtimectl.core.api import ControlPlane
from runtimectl.core.errors import (
    ControlPlaneError,
    ServiceError,
    ValidationError,
    WriteLockedError,
)
from runtimectl.core.locks import LockStateController
from runtimectl.core.logger_config import LoggerConfig, LoggerController
from runtimectl.core.models import LockState, MetricsView, TelemetrySnapshot
from runtimectl.core.telemetry import Anonymizer, TelemetrySnapshotter, anonymize

__all__ = [
    "Anonymizer",
    "ControlPlane",
    "ControlPlaneError",
    "InMemoryTelemetryCollector",
    "LockState",
    "LockStateController",
    "LoggerConfig",
    "LoggerController",
    "MetricsView",
    "ServiceError",
    "StdlibLoggingBackend",
    "TelemetrySnapshot",
    "TelemetrySnapshotter",
    "ValidationError",
    "WriteLockedError",
    "anonymize",
]
