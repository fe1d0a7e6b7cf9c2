"""Shared query parameter parsing utilities for framework adapters.

Unlike the lenient defaults of a scrape endpoint, malformed control-plane
parameters are rejected so an operator never acts on a misread request.
"""

from runtimectl.core.errors import ValidationError

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    return values[0] if values else None


def _parse_bool_param(
    params: dict[str, list[str]], name: str, default: bool = False
) -> bool:
    """Parse a boolean query parameter.

    Args:
        params: Parsed query string parameters (as returned by urllib.parse.parse_qs).
        name: Parameter name.
        default: Value used when the parameter is missing.

    Raises:
        ValidationError: If the value is not a recognised boolean spelling.
    """
    raw = _first(params, name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name}: expected a boolean, got {raw!r}", field=name)


def _parse_non_negative_int_param(
    params: dict[str, list[str]], name: str, default: int = 0
) -> int:
    """Parse a non-negative integer query parameter.

    Raises:
        ValidationError: If the value is not an integer or is negative.
    """
    raw = _first(params, name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(
            f"{name}: expected a non-negative integer, got {raw!r}", field=name
        ) from None
    if value < 0:
        raise ValidationError(
            f"{name}: expected a non-negative integer, got {raw!r}", field=name
        )
    return value


def _parse_lock_body(data: object) -> tuple[bool, str | None]:
    """Validate a lock request body.

    Accepts ``{"write": bool, "error_message": str | null}`` and the
    ``write_locked`` / ``reason`` spellings.

    Returns:
        Tuple of (write_locked, reason).

    Raises:
        ValidationError: If the body is not an object or fields are mistyped.
    """
    if not isinstance(data, dict):
        raise ValidationError("expected a JSON object")
    write = data.get("write", data.get("write_locked"))
    if not isinstance(write, bool):
        raise ValidationError("write: expected a boolean", field="write")
    reason = data.get("error_message", data.get("reason"))
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("error_message: expected a string", field="error_message")
    return write, reason
