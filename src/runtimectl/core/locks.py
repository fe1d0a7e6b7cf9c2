"""Global write-lock state shared by administrative requests and the engine."""

import logging
import threading

from runtimectl.core.errors import WriteLockedError
from runtimectl.core.models import LockState

logger = logging.getLogger(__name__)


class LockStateController:
    """Owns the process-wide write lock flag and its reason.

    The state is a single immutable ``LockState`` record swapped by
    reference under a mutex, so readers never see the flag from one write
    paired with the reason from another.
    """

    def __init__(self, initial: LockState | None = None) -> None:
        self._state = initial or LockState()
        self._lock = threading.Lock()

    def get_lock_state(self) -> LockState:
        """Return the current lock state."""
        with self._lock:
            return self._state

    def set_lock_state(
        self, write_locked: bool, reason: str | None = None
    ) -> LockState:
        """Swap in a new lock state.

        Args:
            write_locked: True to reject subsequent writes.
            reason: Message reported to rejected writers.

        Returns:
            The state that was in effect immediately before the swap.
        """
        new_state = LockState(write_locked=write_locked, reason=reason)
        with self._lock:
            previous = self._state
            self._state = new_state
        if new_state.write_locked and not previous.write_locked:
            logger.warning("Write lock enabled", extra={"reason": reason or ""})
        elif previous.write_locked and not new_state.write_locked:
            logger.info("Write lock released")
        return previous

    def is_write_locked(self) -> bool:
        return self.get_lock_state().write_locked

    def lock_reason(self) -> str | None:
        return self.get_lock_state().effective_reason

    def check_write_lock(self) -> None:
        """Raise WriteLockedError if writes are currently forbidden.

        Intended for the engine's write path.
        """
        state = self.get_lock_state()
        if state.write_locked:
            raise WriteLockedError(state.reason)
