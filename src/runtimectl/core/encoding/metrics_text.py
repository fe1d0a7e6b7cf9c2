"""Flat ``name value`` text encoder for telemetry snapshots."""

import hashlib
import json
import math
import re
from collections import Counter
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from runtimectl.core.models import MetricsView, TelemetrySnapshot

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


def _metric_name(path: list[str]) -> str:
    """Join path segments into a valid metric name."""
    name = _INVALID_NAME_CHARS.sub("_", "_".join(path))
    if not name or name[0].isdigit():
        name = f"_{name}"
    return name


def _format_value(value: int | float) -> str:
    """Format a numeric leaf, using Prometheus spellings for non-finite floats."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return repr(value)


def _iter_leaves(value: Any, path: list[str]) -> Iterator[tuple[list[str], str]]:
    if isinstance(value, Mapping):
        for key in sorted(value, key=str):
            yield from _iter_leaves(value[key], [*path, str(key)])
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        for index, item in enumerate(value):
            yield from _iter_leaves(item, [*path, str(index)])
    elif isinstance(value, (int, float)):
        yield path, _format_value(value)


def _disambiguate(path: list[str], name: str) -> str:
    """Suffix a colliding name with a stable hash of its unsanitized path."""
    digest = hashlib.sha256(json.dumps(path).encode("utf-8")).hexdigest()
    return f"{name}_{digest[:8]}"


def as_metrics_view(snapshot: TelemetrySnapshot, prefix: str = "") -> MetricsView:
    """Flatten every numeric leaf of a snapshot into ``name value`` lines.

    Args:
        snapshot: Snapshot to project.
        prefix: Optional first path segment for every metric name.

    Returns:
        MetricsView whose lines are sorted, so equal snapshots always
        produce byte-identical text. Non-numeric leaves are skipped.
        Distinct paths that sanitize to the same name get a suffix
        derived from their original path.
    """
    root = [prefix] if prefix else []
    leaves = [
        (path, _metric_name(path), value)
        for path, value in _iter_leaves(snapshot.data, root)
    ]
    taken = Counter(name for _, name, _ in leaves)
    lines = sorted(
        f"{_disambiguate(path, name) if taken[name] > 1 else name} {value}"
        for path, name, value in leaves
    )
    return MetricsView(lines=tuple(lines))
