"""Encoders for control-plane payloads."""

from runtimectl.core.encoding.json import to_jsonable
from runtimectl.core.encoding.metrics_text import as_metrics_view

__all__ = ["as_metrics_view", "to_jsonable"]
