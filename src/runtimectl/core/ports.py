"""Port interfaces for control-plane collaborators.

These protocols define the contracts that external collaborators must
implement. The core depends only on these interfaces, not on concrete
collectors or logging backends.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from runtimectl.core.logger_config import LoggerConfig


@runtime_checkable
class TelemetryCollectorPort(Protocol):
    """Port for telemetry aggregation.

    Adapters implementing this protocol materialize a point-in-time view
    of their counters. Examples: InMemoryTelemetryCollector.
    """

    async def prepare_data(self, details_level: int) -> Mapping[str, Any]:
        """Materialize telemetry at the requested verbosity.

        Args:
            details_level: Larger values include more detail. The meaning
                of each level is collector-defined.

        Returns:
            JSON-like nested mapping. The caller owns the returned object.
        """
        ...


@runtime_checkable
class LoggingBackendPort(Protocol):
    """Port for a live logging subsystem.

    Examples: StdlibLoggingBackend.
    """

    def apply(self, config: "LoggerConfig") -> None:
        """Adopt ``config`` for all subsequent log records.

        Must be atomic with respect to concurrent log emission. Raising
        leaves the previous configuration in effect.
        """
        ...
