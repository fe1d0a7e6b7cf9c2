"""Logging configuration model, diff merging and the live controller.

A diff is a plain mapping holding only the fields to change. Merging is a
pure function that validates the whole diff before producing a candidate
configuration, so an invalid diff never partially applies. The controller
serializes writers and only commits a candidate once the logging backend
has adopted it.
"""

import logging
import re
import threading
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any

from runtimectl.core.errors import ServiceError, ValidationError
from runtimectl.core.ports import LoggingBackendPort

logger = logging.getLogger(__name__)

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS: dict[str, int] = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}

FORMATS = frozenset({"text", "json"})

_COMPONENT_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*(\.[A-Za-z_][A-Za-z0-9_\-]*)*$")


def normalize_level(value: Any, field_name: str = "log_level") -> str:
    """Validate a level name and return its canonical upper-case spelling.

    Raises:
        ValidationError: If ``value`` is not a known level name.
    """
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name}: expected a level name, got {type(value).__name__}",
            field=field_name,
        )
    level = value.strip().upper()
    level = _LEVEL_ALIASES.get(level, level)
    if level not in LEVELS:
        raise ValidationError(
            f"{field_name}: unknown level {value!r}, expected one of "
            f"{', '.join(LEVELS)}",
            field=field_name,
        )
    return level


def level_number(level: str) -> int:
    return LEVELS[level]


@dataclass(frozen=True)
class FileLoggerConfig:
    """On-disk log sink settings.

    Attributes:
        enabled: Whether records are also written to ``log_file``.
        log_file: Path of the log file, opened in append mode.
        log_level: Threshold for this sink, None to follow the root level.
        format: "text" or "json".
    """

    enabled: bool = False
    log_file: str = "./runtimectl.log"
    log_level: str | None = None
    format: str = "text"


@dataclass(frozen=True)
class LoggerConfig:
    """Complete configuration of the logging subsystem.

    Attributes:
        log_level: Root threshold.
        loggers: Per-component thresholds keyed by dotted logger name.
        format: Console format, "text" or "json".
        color: Colour level names in text format.
        on_disk: File sink settings.
    """

    log_level: str = "INFO"
    loggers: Mapping[str, str] = field(default_factory=dict)
    format: str = "text"
    color: bool = False
    on_disk: FileLoggerConfig = field(default_factory=FileLoggerConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "loggers", MappingProxyType(dict(self.loggers)))

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], components: Iterable[str] | None = None
    ) -> "LoggerConfig":
        """Build a configuration from a (possibly partial) mapping.

        Missing fields take their defaults.

        Raises:
            ValidationError: If any field is invalid.
        """
        return merge(cls(), data, components=components)

    def to_dict(self) -> dict[str, Any]:
        return {
            "log_level": self.log_level,
            "loggers": dict(self.loggers),
            "format": self.format,
            "color": self.color,
            "on_disk": asdict(self.on_disk),
        }

    def threshold_for(self, name: str) -> int:
        """Effective numeric threshold for logger ``name``.

        The longest configured dotted prefix of ``name`` wins; the root
        level applies otherwise.
        """
        candidate = name
        while candidate:
            level = self.loggers.get(candidate)
            if level is not None:
                return LEVELS[level]
            candidate = candidate.rpartition(".")[0]
        return LEVELS[self.log_level]

    def min_threshold(self) -> int:
        """Lowest threshold any sink or component may accept."""
        levels = [self.log_level, *self.loggers.values()]
        if self.on_disk.enabled and self.on_disk.log_level is not None:
            levels.append(self.on_disk.log_level)
        return min(LEVELS[level] for level in levels)


def _check_type(value: Any, expected: type, field_name: str) -> None:
    if not isinstance(value, expected) or (
        expected is not bool and isinstance(value, bool)
    ):
        raise ValidationError(
            f"{field_name}: expected {expected.__name__}, got {type(value).__name__}",
            field=field_name,
        )


def _check_format(value: Any, field_name: str) -> str:
    _check_type(value, str, field_name)
    fmt = value.strip().lower()
    if fmt not in FORMATS:
        raise ValidationError(
            f"{field_name}: unknown format {value!r}, expected 'text' or 'json'",
            field=field_name,
        )
    return fmt


def _check_unknown_keys(
    diff: Mapping[str, Any], allowed: Iterable[str], prefix: str = ""
) -> None:
    known = set(allowed)
    for key in diff:
        if key not in known:
            name = f"{prefix}{key}"
            raise ValidationError(f"unknown configuration key {name!r}", field=name)


def _merge_loggers(
    current: Mapping[str, str],
    diff: Any,
    components: frozenset[str] | None,
) -> dict[str, str]:
    if not isinstance(diff, Mapping):
        raise ValidationError(
            f"loggers: expected mapping, got {type(diff).__name__}", field="loggers"
        )
    merged = dict(current)
    for name, level in diff.items():
        field_name = f"loggers.{name}"
        if not isinstance(name, str) or not _COMPONENT_NAME.match(name):
            raise ValidationError(
                f"{field_name}: malformed component name", field=field_name
            )
        if components is not None and name not in components:
            raise ValidationError(
                f"unknown component {name!r}", field=field_name
            )
        if level is None:
            merged.pop(name, None)
        else:
            merged[name] = normalize_level(level, field_name)
    return merged


def _merge_on_disk(current: FileLoggerConfig, diff: Any) -> FileLoggerConfig:
    if not isinstance(diff, Mapping):
        raise ValidationError(
            f"on_disk: expected mapping, got {type(diff).__name__}", field="on_disk"
        )
    _check_unknown_keys(diff, (f.name for f in fields(FileLoggerConfig)), "on_disk.")
    changes: dict[str, Any] = {}
    if "enabled" in diff:
        _check_type(diff["enabled"], bool, "on_disk.enabled")
        changes["enabled"] = diff["enabled"]
    if "log_file" in diff:
        _check_type(diff["log_file"], str, "on_disk.log_file")
        if not diff["log_file"].strip():
            raise ValidationError(
                "on_disk.log_file: must not be empty", field="on_disk.log_file"
            )
        if "\x00" in diff["log_file"]:
            raise ValidationError(
                "on_disk.log_file: must not contain a null byte",
                field="on_disk.log_file",
            )
        changes["log_file"] = diff["log_file"]
    if "log_level" in diff:
        level = diff["log_level"]
        changes["log_level"] = (
            None if level is None else normalize_level(level, "on_disk.log_level")
        )
    if "format" in diff:
        changes["format"] = _check_format(diff["format"], "on_disk.format")
    return replace(current, **changes)


def merge(
    current: LoggerConfig,
    diff: Mapping[str, Any],
    components: Iterable[str] | None = None,
) -> LoggerConfig:
    """Apply a partial diff to ``current`` and return the candidate.

    Pure: ``current`` is never modified. Fields absent from ``diff`` keep
    their current value.

    Args:
        current: Configuration to start from.
        diff: Mapping holding only the fields to change.
        components: Optional allow-list of component logger names.

    Raises:
        ValidationError: Naming the first invalid field.
    """
    if not isinstance(diff, Mapping):
        raise ValidationError(
            f"expected a mapping, got {type(diff).__name__}", field=None
        )
    _check_unknown_keys(diff, (f.name for f in fields(LoggerConfig)))
    allowed = frozenset(components) if components is not None else None
    changes: dict[str, Any] = {}
    if "log_level" in diff:
        changes["log_level"] = normalize_level(diff["log_level"])
    if "loggers" in diff:
        changes["loggers"] = _merge_loggers(current.loggers, diff["loggers"], allowed)
    if "format" in diff:
        changes["format"] = _check_format(diff["format"], "format")
    if "color" in diff:
        _check_type(diff["color"], bool, "color")
        changes["color"] = diff["color"]
    if "on_disk" in diff:
        changes["on_disk"] = _merge_on_disk(current.on_disk, diff["on_disk"])
    return replace(current, **changes)


class LoggerController:
    """Exposes and updates the live logging configuration.

    Writers serialize on a mutex covering merge, backend apply and commit,
    so concurrent diffs behave as if applied one after another. Readers
    take the current immutable configuration without locking.
    """

    def __init__(
        self,
        backend: LoggingBackendPort,
        initial: LoggerConfig | None = None,
        components: Iterable[str] | None = None,
    ) -> None:
        """Initialize the controller and apply the initial configuration.

        Args:
            backend: Logging subsystem adopting each committed configuration.
            initial: Starting configuration (defaults to LoggerConfig()).
            components: Optional allow-list of component logger names
                accepted in ``loggers`` diffs.
        """
        self._backend = backend
        self._components = frozenset(components) if components is not None else None
        self._lock = threading.Lock()
        config = initial or LoggerConfig()
        self._backend.apply(config)
        self._config = config

    def get_config(self) -> LoggerConfig:
        """Return the configuration currently in effect."""
        return self._config

    def update_config(self, diff: Mapping[str, Any]) -> LoggerConfig:
        """Validate and apply a partial configuration diff.

        Returns:
            The newly committed configuration.

        Raises:
            ValidationError: If the diff is invalid. Nothing is applied.
            ServiceError: If the backend rejects the candidate. The
                previous configuration stays in effect.
        """
        with self._lock:
            candidate = merge(self._config, diff, components=self._components)
            try:
                self._backend.apply(candidate)
            except (OSError, ValueError) as e:
                raise ServiceError(f"Failed to apply logger configuration: {e}") from e
            self._config = candidate
        logger.info("Logger configuration updated", extra={"fields": ",".join(diff)})
        return candidate
