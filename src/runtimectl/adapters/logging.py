"""Python logging backend that adopts LoggerConfig changes live.

A single ``ReconfigurableHandler`` is installed on the target logger. All
per-record decisions (threshold, formatter, file sink) are read from one
immutable state object that is swapped by reference, so every record is
handled against exactly one configuration.
"""

import json
import logging
import sys
import threading
import traceback
from dataclasses import dataclass
from typing import IO, Any

from runtimectl.core.logger_config import LEVELS, LoggerConfig

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LEVEL_COLORS = {
    "TRACE": "\x1b[90m",
    "DEBUG": "\x1b[34m",
    "INFO": "\x1b[32m",
    "WARNING": "\x1b[33m",
    "ERROR": "\x1b[31m",
    "CRITICAL": "\x1b[1;31m",
}
_RESET = "\x1b[0m"


class JSONFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        obj: dict[str, Any] = {
            "timestamp": record.created,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                value, (str, int, float, bool)
            ):
                obj[key] = value

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                obj["exc_type"] = exc_type.__name__
            if exc_value is not None:
                obj["exc_message"] = str(exc_value)
            if exc_tb is not None:
                obj["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )
        return json.dumps(obj)


class ColorFormatter(logging.Formatter):
    """Text formatter that colours the level name with ANSI escapes."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelname)
        if color is None:
            return line
        return line.replace(
            record.levelname, f"{color}{record.levelname}{_RESET}", 1
        )


def build_formatter(fmt: str, color: bool = False) -> logging.Formatter:
    if fmt == "json":
        return JSONFormatter()
    if color:
        return ColorFormatter(TEXT_FORMAT)
    return logging.Formatter(TEXT_FORMAT)


@dataclass(frozen=True)
class _HandlerState:
    config: LoggerConfig
    console: logging.Formatter
    file_handler: logging.FileHandler | None
    file_threshold: int


class ReconfigurableHandler(logging.Handler):
    """Handler writing to a console stream and an optional file sink.

    Example:
        ```python
        handler = ReconfigurableHandler(sys.stderr)
        handler.configure(LoggerConfig(log_level="DEBUG"))
        logging.getLogger().addHandler(handler)
        ```
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        super().__init__(level=logging.NOTSET)
        self._stream = stream if stream is not None else sys.stderr
        self._state: _HandlerState | None = None
        self._configure_lock = threading.Lock()

    @property
    def config(self) -> LoggerConfig | None:
        state = self._state
        return state.config if state is not None else None

    def configure(self, config: LoggerConfig) -> None:
        """Swap in a new configuration.

        The file sink is opened before the swap and the replaced one closed
        after it. Raises OSError if the file cannot be opened, leaving the
        previous state in effect.
        """
        with self._configure_lock:
            previous = self._state
            file_handler = self._reuse_or_open_file(previous, config)
            state = _HandlerState(
                config=config,
                console=build_formatter(config.format, config.color),
                file_handler=file_handler,
                file_threshold=LEVELS[config.on_disk.log_level or config.log_level],
            )
            self._state = state
            if (
                previous is not None
                and previous.file_handler is not None
                and previous.file_handler is not file_handler
            ):
                previous.file_handler.close()

    def _reuse_or_open_file(
        self, previous: _HandlerState | None, config: LoggerConfig
    ) -> logging.FileHandler | None:
        on_disk = config.on_disk
        if not on_disk.enabled:
            return None
        if (
            previous is not None
            and previous.file_handler is not None
            and previous.config.on_disk.log_file == on_disk.log_file
            and previous.config.on_disk.format == on_disk.format
        ):
            return previous.file_handler
        file_handler = logging.FileHandler(on_disk.log_file, encoding="utf-8")
        file_handler.setFormatter(build_formatter(on_disk.format))
        return file_handler

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a record against the configuration current at entry.

        Args:
            record: The log record to emit.
        """
        state = self._state
        if state is None:
            return
        threshold = state.config.threshold_for(record.name)
        if record.levelno < threshold:
            return
        try:
            self._stream.write(state.console.format(record) + "\n")
            self._stream.flush()
        except Exception:
            self.handleError(record)
        if state.file_handler is not None and record.levelno >= max(
            threshold, state.file_threshold
        ):
            state.file_handler.handle(record)

    def close(self) -> None:
        with self._configure_lock:
            state = self._state
            self._state = None
        if state is not None and state.file_handler is not None:
            state.file_handler.close()
        super().close()


class StdlibLoggingBackend:
    """LoggingBackendPort implementation over the standard logging module.

    Args:
        logger_name: Logger to install the handler on ("" for the root).
        stream: Console stream, defaults to stderr.
    """

    def __init__(self, logger_name: str = "", stream: IO[str] | None = None) -> None:
        self._logger = logging.getLogger(logger_name or None)
        self.handler = ReconfigurableHandler(stream)
        self._logger.addHandler(self.handler)

    def apply(self, config: LoggerConfig) -> None:
        """Adopt ``config``; the handler swap happens before the level change."""
        self.handler.configure(config)
        self._logger.setLevel(config.min_threshold())

    def close(self) -> None:
        self._logger.removeHandler(self.handler)
        self.handler.close()
