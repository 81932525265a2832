"""Configuration store and conversation log layer."""

from src.db.conversation_log import (
    ConversationLogger,
    InMemoryConversationLogger,
    SupabaseConversationLogger,
    record_conversation,
)
from src.db.query_executor import timed_query
from src.db.repository import (
    ConfigStore,
    InMemoryConfigStore,
    SupabaseConfigStore,
    seed_demo_agent,
)

__all__ = [
    "ConfigStore",
    "ConversationLogger",
    "InMemoryConfigStore",
    "InMemoryConversationLogger",
    "SupabaseConfigStore",
    "SupabaseConversationLogger",
    "record_conversation",
    "seed_demo_agent",
    "timed_query",
]
