"""Agent, tool and FAQ configuration repository.

The pipeline only reads configuration. Writes exist so the store can be
seeded (startup demo agent, CLI, tests) and so default tool configurations
can be created on an agent's first tool lookup.
"""

from datetime import datetime, timezone
from threading import Lock
from typing import Protocol

import logfire
from supabase import Client

from src.db.default_tools import create_default_tool_configs
from src.db.query_executor import timed_query
from src.models.agent_models import FAQ, AgentConfig, ToolConfig, ToolName


class ConfigStore(Protocol):
    """Read interface the pipeline needs from configuration storage."""

    def get_agent(self, agent_id: str) -> AgentConfig | None:
        """Return the agent's configuration, or None if it does not exist."""
        ...

    def get_tool_config(self, agent_id: str, name: ToolName) -> ToolConfig | None:
        """Return a tool configuration, creating the defaults on first use."""
        ...

    def get_faqs(self, agent_id: str) -> list[FAQ]:
        """Return the agent's FAQs in insertion order."""
        ...


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryConfigStore:
    """Thread-safe in-memory configuration store.

    Used for local runs, the evaluation CLI and tests.
    """

    def __init__(self) -> None:
        self._agents: dict[str, AgentConfig] = {}
        self._tools: dict[tuple[str, ToolName], ToolConfig] = {}
        self._faqs: dict[str, list[FAQ]] = {}
        self._lock = Lock()

    def get_agent(self, agent_id: str) -> AgentConfig | None:
        with self._lock:
            return self._agents.get(agent_id)

    def get_tool_config(self, agent_id: str, name: ToolName) -> ToolConfig | None:
        with self._lock:
            existing = self._tools.get((agent_id, name))
            if existing is not None:
                return existing

            # Insert missing defaults without overwriting existing records
            for default in create_default_tool_configs(agent_id):
                self._tools.setdefault((agent_id, default.name), default)
            logfire.info("Default tool configs created", agent_id=agent_id)
            return self._tools.get((agent_id, name))

    def get_faqs(self, agent_id: str) -> list[FAQ]:
        with self._lock:
            return list(self._faqs.get(agent_id, []))

    def upsert_agent(self, agent: AgentConfig) -> AgentConfig:
        """Create or replace an agent configuration."""
        with self._lock:
            existing = self._agents.get(agent.agent_id)
            if existing is not None:
                agent = agent.model_copy(
                    update={
                        "created_at": existing.created_at,
                        "updated_at": datetime.now(timezone.utc),
                    }
                )
            self._agents[agent.agent_id] = agent
            return agent

    def upsert_tool_config(self, tool: ToolConfig) -> ToolConfig:
        """Create or replace a tool configuration."""
        with self._lock:
            self._tools[(tool.agent_id, tool.name)] = tool
            return tool

    def add_faq(self, faq: FAQ) -> FAQ:
        """Append a FAQ to its agent's list."""
        with self._lock:
            self._faqs.setdefault(faq.agent_id, []).append(faq)
            return faq

    def list_tool_configs(self, agent_id: str) -> list[ToolConfig]:
        """All tool configurations for an agent, sorted by name."""
        with self._lock:
            tools = [t for (a, _), t in self._tools.items() if a == agent_id]
        return sorted(tools, key=lambda t: t.name.value)


# =============================================================================
# Supabase store
# =============================================================================


class SupabaseConfigStore:
    """Configuration store backed by Supabase tables.

    Tables: agents, tool_configs, faqs (see migrations/001_initial.sql).
    """

    def __init__(self, client: Client):
        self._client = client

    def get_agent(self, agent_id: str) -> AgentConfig | None:
        with timed_query("get_agent", "agents", agent_id=agent_id):
            result = (
                self._client.table("agents")
                .select("*")
                .eq("agent_id", agent_id)
                .execute()
            )
        if not result.data:
            logfire.warning("No agent configuration found", agent_id=agent_id)
            return None
        return AgentConfig(**result.data[0])

    def get_tool_config(self, agent_id: str, name: ToolName) -> ToolConfig | None:
        existing = self._find_tool_config(agent_id, name)
        if existing is not None:
            return existing

        defaults = [
            tool.model_dump(mode="json")
            for tool in create_default_tool_configs(agent_id)
        ]
        with timed_query("create_default_tool_configs", "tool_configs", agent_id=agent_id):
            self._client.table("tool_configs").upsert(
                defaults,
                on_conflict="agent_id,name",
                ignore_duplicates=True,
            ).execute()
        logfire.info("Default tool configs created", agent_id=agent_id)

        return self._find_tool_config(agent_id, name)

    def get_faqs(self, agent_id: str) -> list[FAQ]:
        with timed_query("get_faqs", "faqs", agent_id=agent_id):
            result = (
                self._client.table("faqs")
                .select("*")
                .eq("agent_id", agent_id)
                .order("created_at")
                .execute()
            )
        return [FAQ(**row) for row in result.data or []]

    def _find_tool_config(self, agent_id: str, name: ToolName) -> ToolConfig | None:
        with timed_query("get_tool_config", "tool_configs", agent_id=agent_id, tool=name.value):
            result = (
                self._client.table("tool_configs")
                .select("*")
                .eq("agent_id", agent_id)
                .eq("name", name.value)
                .execute()
            )
        if not result.data:
            return None
        return ToolConfig(**result.data[0])


# =============================================================================
# Seeding
# =============================================================================


def seed_demo_agent(store: InMemoryConfigStore, agent_id: str) -> AgentConfig:
    """Create a balanced-mode demo agent with a few FAQs."""
    agent = store.upsert_agent(
        AgentConfig(
            agent_id=agent_id,
            name="Demo Support Agent",
            persona=(
                "You are a friendly customer support assistant for an online store."
            ),
        )
    )
    if not store.get_faqs(agent_id):
        store.add_faq(
            FAQ(
                agent_id=agent_id,
                question="What are your business hours?",
                answer="We are open Monday to Saturday, 9am to 6pm IST.",
            )
        )
        store.add_faq(
            FAQ(
                agent_id=agent_id,
                question="Do you ship internationally?",
                answer="Yes, we ship to most countries. Delivery takes 7 to 14 days.",
            )
        )
        store.add_faq(
            FAQ(
                agent_id=agent_id,
                question="What is your return policy?",
                answer="Items can be returned within 30 days of delivery.",
            )
        )
    logfire.info("Demo agent seeded", agent_id=agent_id)
    return agent
