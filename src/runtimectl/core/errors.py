"""Error hierarchy for control-plane operations."""


class ControlPlaneError(Exception):
    """Base class for all control-plane errors."""


class ServiceError(ControlPlaneError):
    """An underlying collaborator failed to serve the request.

    Surfaced to callers as a server-side failure carrying the cause message.
    """


class ValidationError(ControlPlaneError):
    """Caller-supplied input is malformed or references unknown keys.

    Attributes:
        field: Dotted name of the offending field, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class WriteLockedError(ControlPlaneError):
    """Raised when a write is attempted while the global write lock is set."""

    DEFAULT_MESSAGE = "Write operations are forbidden"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.DEFAULT_MESSAGE)
        self.reason = reason
