"""Concurrent session admission control.

Bounds how many distinct sessions are processed at once. A session already
being processed is always admitted again; the capacity only applies to new
session ids. Membership is released when processing ends, whether it
succeeded or failed.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock

import logfire

from src.constants import MAX_CONCURRENT_SESSIONS


class AdmissionDeniedError(Exception):
    """Raised when a new session arrives while capacity is exhausted."""

    def __init__(self, session_id: str, capacity: int):
        super().__init__(
            f"Maximum concurrent sessions reached ({capacity}); "
            f"session {session_id} was not admitted"
        )
        self.session_id = session_id
        self.capacity = capacity


class SessionAdmission:
    """Thread-safe set of sessions currently being processed."""

    def __init__(self, capacity: int = MAX_CONCURRENT_SESSIONS):
        """Initialize admission control.

        Args:
            capacity: Maximum number of distinct sessions in flight.
        """
        self._active: set[str] = set()
        self._capacity = capacity
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        """Maximum number of distinct sessions in flight."""
        return self._capacity

    def try_acquire(self, session_id: str) -> bool:
        """Mark a session as processing if capacity allows.

        Returns:
            True if admitted, False if the session is new and capacity is full.
        """
        with self._lock:
            if session_id not in self._active and len(self._active) >= self._capacity:
                logfire.warning(
                    "Session admission denied",
                    session_id=session_id,
                    active_sessions=len(self._active),
                    capacity=self._capacity,
                )
                return False
            self._active.add(session_id)
            return True

    def release(self, session_id: str) -> None:
        """Remove a session from the processing set."""
        with self._lock:
            self._active.discard(session_id)

    @contextmanager
    def admit(self, session_id: str) -> Iterator[None]:
        """Hold admission for the duration of a with-block.

        Raises:
            AdmissionDeniedError: If the session cannot be admitted.
        """
        if not self.try_acquire(session_id):
            raise AdmissionDeniedError(session_id, self._capacity)
        try:
            yield
        finally:
            self.release(session_id)

    def is_active(self, session_id: str) -> bool:
        """Whether a session is currently being processed."""
        with self._lock:
            return session_id in self._active

    @property
    def active_count(self) -> int:
        """Number of sessions currently being processed."""
        with self._lock:
            return len(self._active)

    def reset(self) -> None:
        """Forget all active sessions."""
        with self._lock:
            self._active.clear()
