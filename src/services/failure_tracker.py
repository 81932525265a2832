"""Per-session, per-intent tool failure counting.

Counters live for the lifetime of the tracker. Concurrent requests on the
same session share a counter; updates are atomic but requests are not
serialized against each other.
"""

from threading import Lock

import logfire

from src.models.intent_models import Intent


class FailureTracker:
    """Thread-safe in-memory counter of consecutive tool failures."""

    def __init__(self) -> None:
        self._counts: dict[tuple[str, Intent], int] = {}
        self._lock = Lock()

    def get(self, session_id: str, intent: Intent) -> int:
        """Current failure count for a session and intent."""
        with self._lock:
            return self._counts.get((session_id, intent), 0)

    def increment(self, session_id: str, intent: Intent) -> int:
        """Record a tool failure and return the new count."""
        with self._lock:
            count = self._counts.get((session_id, intent), 0) + 1
            self._counts[(session_id, intent)] = count
        logfire.info(
            "Tool failure recorded",
            session_id=session_id,
            intent=intent.value,
            failure_count=count,
        )
        return count

    def reset(self, session_id: str, intent: Intent) -> None:
        """Drop the counter after a tool success."""
        with self._lock:
            self._counts.pop((session_id, intent), None)

    def clear(self) -> None:
        """Forget every counter."""
        with self._lock:
            self._counts.clear()

    @property
    def size(self) -> int:
        """Number of tracked (session, intent) keys."""
        with self._lock:
            return len(self._counts)
