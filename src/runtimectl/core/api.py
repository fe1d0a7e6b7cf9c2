"""Control-plane dispatch over the lock, telemetry and logger components."""

from collections.abc import Iterable, Mapping
from typing import Any

from runtimectl.core.envelope import ResponseEnvelope, process_response, timed
from runtimectl.core.errors import ControlPlaneError
from runtimectl.core.locks import LockStateController
from runtimectl.core.logger_config import LoggerConfig, LoggerController
from runtimectl.core.models import MetricsView
from runtimectl.core.ports import LoggingBackendPort, TelemetryCollectorPort
from runtimectl.core.stacktrace import get_stack_trace
from runtimectl.core.telemetry import Anonymizer, TelemetrySnapshotter

HEALTHZ_BODY = "healthz check passed"
HEALTHZ_CONTENT_TYPE = "text/plain; charset=utf-8"


class ControlPlane:
    """Administrative operations bound to explicitly owned state objects.

    Every enveloped operation is timed, failures included.
    """

    def __init__(
        self,
        locks: LockStateController,
        snapshotter: TelemetrySnapshotter,
        logger_controller: LoggerController,
    ) -> None:
        self.locks = locks
        self.snapshotter = snapshotter
        self.logger_controller = logger_controller

    @classmethod
    def create(
        cls,
        collector: TelemetryCollectorPort,
        logging_backend: LoggingBackendPort,
        logger_config: LoggerConfig | None = None,
        components: Iterable[str] | None = None,
        anonymizer: Anonymizer | None = None,
    ) -> "ControlPlane":
        """Wire a control plane with a fresh, unlocked lock state."""
        return cls(
            locks=LockStateController(),
            snapshotter=TelemetrySnapshotter(collector, anonymizer=anonymizer),
            logger_controller=LoggerController(
                logging_backend, initial=logger_config, components=components
            ),
        )

    async def get_telemetry(
        self, anonymize: bool = False, details_level: int = 0
    ) -> ResponseEnvelope:
        with timed() as timer:
            try:
                result: Any = await self.snapshotter.telemetry(
                    details_level=details_level, anonymize=anonymize
                )
            except ControlPlaneError as e:
                result = e
        return process_response(result, timer.elapsed)

    async def get_metrics(self, anonymize: bool = False) -> MetricsView:
        """Flat metrics text.

        Not enveloped: scrape consumers expect the bare body.

        Raises:
            ServiceError: If the collector fails.
        """
        return await self.snapshotter.metrics(anonymize=anonymize)

    def put_locks(
        self, write_locked: bool, reason: str | None = None
    ) -> ResponseEnvelope:
        """Set the write lock; the envelope carries the previous state."""
        with timed() as timer:
            previous = self.locks.set_lock_state(write_locked, reason)
        return process_response(previous, timer.elapsed)

    def get_locks(self) -> ResponseEnvelope:
        with timed() as timer:
            state = self.locks.get_lock_state()
        return process_response(state, timer.elapsed)

    def get_stacktrace(self) -> ResponseEnvelope:
        with timed() as timer:
            trace = get_stack_trace()
        return process_response(trace, timer.elapsed)

    def healthz(self) -> str:
        return HEALTHZ_BODY

    livez = healthz
    readyz = healthz

    def get_logger_config(self) -> dict[str, Any]:
        return self.logger_controller.get_config().to_dict()

    def put_logger_config(self, diff: Mapping[str, Any]) -> ResponseEnvelope:
        with timed() as timer:
            try:
                self.logger_controller.update_config(diff)
                result: Any = True
            except ControlPlaneError as e:
                result = e
        return process_response(result, timer.elapsed)
