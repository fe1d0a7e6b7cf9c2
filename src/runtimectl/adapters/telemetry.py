"""In-memory telemetry collector adapter.

Stores counters and gauges in dicts and materializes them as nested
mappings. Suitable for testing and for services that do not have a
dedicated telemetry aggregator.
"""

import os
import platform
import socket
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from typing import Any

SectionProvider = Callable[[int], Mapping[str, Any]]


def _label_key(labels: Mapping[str, str] | None) -> str:
    if not labels:
        return ""
    return ",".join(f"{k}={labels[k]}" for k in sorted(labels))


class InMemoryTelemetryCollector:
    """In-memory implementation of TelemetryCollectorPort.

    Details levels:
        0: app info, counter totals and gauges.
        1: adds per-label breakdowns and host information.
        2 and above: passed through to registered section providers.

    Args:
        app_name: Reported application name.
        version: Reported application version.
    """

    def __init__(self, app_name: str = "runtimectl", version: str = "0.0.0") -> None:
        self.instance_id = str(uuid.uuid4())
        self.app_name = app_name
        self.version = version
        self.started_at = time.time()
        self._counters: dict[str, dict[str, float]] = {}
        self._gauges: dict[str, dict[str, float]] = {}
        self._sections: dict[str, tuple[int, SectionProvider]] = {}
        self._lock = threading.Lock()
        self._closed = False

    def increment(
        self, name: str, value: float = 1.0, labels: Mapping[str, str] | None = None
    ) -> None:
        """Add ``value`` to a counter."""
        key = _label_key(labels)
        with self._lock:
            series = self._counters.setdefault(name, {})
            series[key] = series.get(key, 0.0) + value

    def set_gauge(
        self, name: str, value: float, labels: Mapping[str, str] | None = None
    ) -> None:
        """Set a gauge to its current value."""
        with self._lock:
            self._gauges.setdefault(name, {})[_label_key(labels)] = value

    def register_section(
        self, name: str, provider: SectionProvider, min_level: int = 0
    ) -> None:
        """Include ``provider(details_level)`` under ``name`` in snapshots.

        Args:
            name: Top-level key of the section.
            provider: Callable returning the section payload.
            min_level: Lowest details level the section appears at.

        Raises:
            ValueError: If a section with this name is already registered.
        """
        with self._lock:
            if name in self._sections:
                raise ValueError(f"section {name!r} already registered")
            self._sections[name] = (min_level, provider)

    def close(self) -> None:
        """Stop serving snapshots."""
        self._closed = True

    async def prepare_data(self, details_level: int) -> dict[str, Any]:
        """Materialize counters, gauges and sections at ``details_level``."""
        if self._closed:
            raise RuntimeError("telemetry collector is shut down")
        with self._lock:
            counters = {name: dict(series) for name, series in self._counters.items()}
            gauges = {name: dict(series) for name, series in self._gauges.items()}
            sections = sorted(self._sections.items())

        data: dict[str, Any] = {
            "id": self.instance_id,
            "app": {
                "name": self.app_name,
                "version": self.version,
                "started_at": self.started_at,
            },
            "counters": {name: sum(s.values()) for name, s in counters.items()},
            "gauges": {name: s[""] for name, s in gauges.items() if "" in s},
        }
        if details_level >= 1:
            data["app"]["system"] = {
                "hostname": socket.gethostname(),
                "pid": os.getpid(),
                "python": platform.python_version(),
                "cpu_count": os.cpu_count() or 0,
            }
            data["details"] = {
                "counters": _label_series(counters),
                "gauges": _label_series(gauges),
            }
        for name, (min_level, provider) in sections:
            if details_level >= min_level:
                data[name] = provider(details_level)
        return data


def _label_series(
    metrics: Mapping[str, Mapping[str, float]],
) -> dict[str, dict[str, Any]]:
    """Per-label values of each labelled metric, keyed under ``series``."""
    return {
        name: {"series": {key: v for key, v in series.items() if key}}
        for name, series in metrics.items()
        if any(series)
    }
