"""Guarded telemetry snapshots and their anonymized projections."""

import asyncio
import hashlib
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from runtimectl.core.encoding.metrics_text import as_metrics_view
from runtimectl.core.errors import ServiceError, ValidationError
from runtimectl.core.models import MetricsView, TelemetrySnapshot
from runtimectl.core.ports import TelemetryCollectorPort

logger = logging.getLogger(__name__)

# Details level used by the metrics scrape endpoint
METRICS_DETAILS_LEVEL = 1

ANON_PREFIX = "anon-"

# Host, network and instance identity, removed entirely
DEFAULT_DROP_KEYS = frozenset(
    {
        "id",
        "hostname",
        "host",
        "ip",
        "address",
        "uri",
        "url",
        "peer_uri",
        "peers",
        "bootstrap",
    }
)

# User-supplied strings, replaced by a one-way token
DEFAULT_HASH_KEYS = frozenset({"alias", "collection", "user", "username"})

# Mappings whose keys are user-chosen names
DEFAULT_HASHED_MAPPINGS = frozenset({"collections", "aliases", "users", "series"})


def anonymize_token(value: str) -> str:
    """Return a stable one-way token for ``value``.

    Tokens are returned unchanged so repeated anonymization is a no-op.
    """
    if value.startswith(ANON_PREFIX):
        return value
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
    return f"{ANON_PREFIX}{digest[:16]}"


class Anonymizer:
    """Pure, idempotent projection removing identifying fields.

    Args:
        drop_keys: Keys removed wherever they appear.
        hash_keys: Keys whose string values are replaced by tokens.
        hashed_mappings: Keys whose mapping values have user-chosen keys;
            those keys are replaced by tokens.
    """

    def __init__(
        self,
        drop_keys: Iterable[str] = DEFAULT_DROP_KEYS,
        hash_keys: Iterable[str] = DEFAULT_HASH_KEYS,
        hashed_mappings: Iterable[str] = DEFAULT_HASHED_MAPPINGS,
    ) -> None:
        self.drop_keys = frozenset(drop_keys)
        self.hash_keys = frozenset(hash_keys)
        self.hashed_mappings = frozenset(hashed_mappings)

    def __call__(self, snapshot: TelemetrySnapshot) -> TelemetrySnapshot:
        if snapshot.anonymized:
            return snapshot
        return replace(
            snapshot,
            data=self._project_mapping(snapshot.data, hash_keys=False),
            anonymized=True,
        )

    def _project_mapping(
        self, data: Mapping[str, Any], hash_keys: bool
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in data.items():
            if key in self.drop_keys:
                continue
            if key in self.hash_keys:
                value = self._hash_value(value)
            else:
                value = self._project(value, hash_keys=key in self.hashed_mappings)
            result[anonymize_token(key) if hash_keys else key] = value
        return result

    def _project(self, value: Any, hash_keys: bool = False) -> Any:
        if isinstance(value, Mapping):
            return self._project_mapping(value, hash_keys=hash_keys)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            return [self._project(v) for v in value]
        return value

    def _hash_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return anonymize_token(value)
        if isinstance(value, Sequence) and not isinstance(value, bytes):
            return [self._hash_value(v) for v in value]
        return self._project(value)


_default_anonymizer = Anonymizer()


def anonymize(snapshot: TelemetrySnapshot) -> TelemetrySnapshot:
    """Anonymize a snapshot with the default key sets."""
    return _default_anonymizer(snapshot)


class TelemetrySnapshotter:
    """Serializes access to a telemetry collector and shapes its output.

    Only one ``prepare_data`` call is in flight against the collector at a
    time. The guard is released before the snapshot is frozen, anonymized
    or projected.
    """

    def __init__(
        self,
        collector: TelemetryCollectorPort,
        anonymizer: Anonymizer | None = None,
    ) -> None:
        self._collector = collector
        self._anonymizer = anonymizer or _default_anonymizer
        self._lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the collector lock (lazy to avoid event loop issues)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def snapshot(self, details_level: int) -> TelemetrySnapshot:
        """Take a point-in-time snapshot at ``details_level``.

        Raises:
            ValidationError: If details_level is negative.
            ServiceError: If the collector cannot produce data.
        """
        if details_level < 0:
            raise ValidationError(
                "details_level must be a non-negative integer", field="details_level"
            )
        async with self._get_lock():
            try:
                data = await self._collector.prepare_data(details_level)
            except Exception as e:
                logger.error("Telemetry collector failed: %s", e)
                raise ServiceError(f"Failed to collect telemetry: {e}") from e
        return TelemetrySnapshot(details_level=details_level, data=data)

    def anonymize(self, snapshot: TelemetrySnapshot) -> TelemetrySnapshot:
        return self._anonymizer(snapshot)

    async def telemetry(
        self, details_level: int = 0, anonymize: bool = False
    ) -> TelemetrySnapshot:
        """Structured telemetry at a caller-chosen verbosity."""
        snapshot = await self.snapshot(details_level)
        if anonymize:
            snapshot = self.anonymize(snapshot)
        return snapshot

    async def metrics(self, anonymize: bool = False) -> MetricsView:
        """Flat metrics text, always taken at details level 1."""
        snapshot = await self.telemetry(METRICS_DETAILS_LEVEL, anonymize=anonymize)
        return as_metrics_view(snapshot)
