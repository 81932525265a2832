"""Conversation log persistence.

The pipeline hands every finished run to a ConversationLogger. Logging is
best-effort: record_conversation() never raises, so a storage failure cannot
alter a response that has already been computed.
"""

from collections import deque
from threading import Lock
from typing import Protocol

import logfire
from supabase import Client

from src.constants import MAX_LOG_QUERY_RESULTS
from src.db.query_executor import timed_query
from src.models.message_models import ConversationLog, LogQuery


class ConversationLogger(Protocol):
    """Sink for finished pipeline runs."""

    def save(self, log: ConversationLog) -> None:
        """Persist a log entry. May raise on storage failure."""
        ...

    def query(self, filters: LogQuery, limit: int = MAX_LOG_QUERY_RESULTS) -> list[ConversationLog]:
        """Most recent entries matching the filters, newest first."""
        ...


def record_conversation(logger: ConversationLogger, log: ConversationLog) -> bool:
    """Save a log entry, swallowing storage failures.

    Returns:
        True if saved, False if the logger failed
    """
    try:
        logger.save(log)
        return True
    except Exception as e:
        logfire.error(
            "Failed to log conversation",
            agent_id=log.agent_id,
            session_id=log.session_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        return False


def _matches(log: ConversationLog, filters: LogQuery) -> bool:
    response = log.response
    if filters.agent_id and log.agent_id != filters.agent_id:
        return False
    if filters.intent and response.intent.value != filters.intent:
        return False
    if filters.action and response.action.value != filters.action:
        return False
    if filters.failed and (
        response.tool_execution is None or response.tool_execution.success
    ):
        return False
    return True


class InMemoryConversationLogger:
    """Bounded in-memory conversation log."""

    def __init__(self, max_entries: int = 10_000):
        self._entries: deque[ConversationLog] = deque(maxlen=max_entries)
        self._lock = Lock()

    def save(self, log: ConversationLog) -> None:
        with self._lock:
            self._entries.append(log)

    def query(self, filters: LogQuery, limit: int = MAX_LOG_QUERY_RESULTS) -> list[ConversationLog]:
        with self._lock:
            entries = list(self._entries)
        matching = [log for log in entries if _matches(log, filters)]
        matching.sort(key=lambda log: log.timestamp, reverse=True)
        return matching[:limit]

    @property
    def entries(self) -> list[ConversationLog]:
        """All stored entries, oldest first."""
        with self._lock:
            return list(self._entries)


class SupabaseConversationLogger:
    """Conversation log stored in the conversation_logs table.

    The response is stored as JSON alongside denormalized intent, action and
    tool_failed columns used for filtering.
    """

    TABLE = "conversation_logs"

    def __init__(self, client: Client):
        self._client = client

    def save(self, log: ConversationLog) -> None:
        response = log.response
        data = {
            "agent_id": log.agent_id,
            "session_id": log.session_id,
            "message": log.message,
            "response": response.model_dump(mode="json", by_alias=True),
            "intent": response.intent.value,
            "action": response.action.value,
            "tool_failed": (
                response.tool_execution is not None
                and not response.tool_execution.success
            ),
            "timestamp": log.timestamp.isoformat(),
        }
        with timed_query("save_conversation_log", self.TABLE, agent_id=log.agent_id):
            self._client.table(self.TABLE).insert(data).execute()

    def query(self, filters: LogQuery, limit: int = MAX_LOG_QUERY_RESULTS) -> list[ConversationLog]:
        request = self._client.table(self.TABLE).select("*")
        if filters.agent_id:
            request = request.eq("agent_id", filters.agent_id)
        if filters.intent:
            request = request.eq("intent", filters.intent)
        if filters.action:
            request = request.eq("action", filters.action)
        if filters.failed:
            request = request.eq("tool_failed", True)

        with timed_query("query_conversation_logs", self.TABLE, agent_id=filters.agent_id):
            result = request.order("timestamp", desc=True).limit(limit).execute()

        return [
            ConversationLog(
                agent_id=row["agent_id"],
                session_id=row["session_id"],
                message=row["message"],
                response=row["response"],
                timestamp=row["timestamp"],
            )
            for row in result.data or []
        ]
