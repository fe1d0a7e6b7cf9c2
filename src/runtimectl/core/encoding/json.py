"""JSON serialization helpers for control-plane payloads."""

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any


def to_jsonable(value: Any) -> Any:
    """Convert a payload into plain JSON-compatible types.

    Objects exposing ``to_dict()`` are converted first. Non-finite floats
    become None since JSON has no spelling for them.
    """
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_jsonable(to_dict())
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def dumps(value: Any) -> str:
    """Serialize a payload to a JSON string."""
    return json.dumps(to_jsonable(value))
