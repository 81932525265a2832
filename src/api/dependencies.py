"""Application service container and FastAPI dependency.

The lifespan builds one AppServices and stores it on app.state.services.
Routes receive it through get_services(), which tests override.
"""

import random
from dataclasses import dataclass

import logfire
from fastapi import Request

from src.config import Settings
from src.db.client import get_supabase_client
from src.db.conversation_log import (
    ConversationLogger,
    InMemoryConversationLogger,
    SupabaseConversationLogger,
)
from src.db.repository import (
    ConfigStore,
    InMemoryConfigStore,
    SupabaseConfigStore,
    seed_demo_agent,
)
from src.middleware.session_admission import SessionAdmission
from src.services.answer_generator import AnswerGenerator
from src.services.completion_service import (
    CompletionService,
    PydanticAICompletionService,
)
from src.services.failure_tracker import FailureTracker
from src.services.hallucination_guard import get_hallucination_guard
from src.services.intent_classifier import IntentClassifier
from src.services.orchestrator import AgentOrchestrator
from src.services.tool_executor import ToolExecutor


@dataclass
class AppServices:
    """Process-wide collaborators shared by every request."""

    config_store: ConfigStore
    conversation_logger: ConversationLogger
    orchestrator: AgentOrchestrator
    admission: SessionAdmission


def build_services(
    settings: Settings,
    completion: CompletionService | None = None,
    config_store: ConfigStore | None = None,
    conversation_logger: ConversationLogger | None = None,
    rng: random.Random | None = None,
) -> AppServices:
    """Wire the pipeline for the configured storage backend.

    Args:
        settings: Application settings
        completion: Completion backend. A PydanticAI service if not provided
        config_store: Configuration store override
        conversation_logger: Conversation logger override
        rng: Random source for the tool executor

    Raises:
        ValueError: If the supabase backend is selected without credentials
    """
    if config_store is None or conversation_logger is None:
        if settings.storage_backend == "supabase":
            client = get_supabase_client()
            config_store = config_store or SupabaseConfigStore(client)
            conversation_logger = conversation_logger or SupabaseConversationLogger(
                client
            )
        else:
            memory_store = InMemoryConfigStore()
            if settings.demo_agent_id:
                seed_demo_agent(memory_store, settings.demo_agent_id)
            config_store = config_store or memory_store
            conversation_logger = conversation_logger or InMemoryConversationLogger()

    completion = completion or PydanticAICompletionService(
        default_model=settings.default_model,
        timeout_seconds=settings.completion_timeout_seconds,
    )
    models = settings.model_chain

    orchestrator = AgentOrchestrator(
        config_store=config_store,
        classifier=IntentClassifier(completion=completion, models=models),
        tool_executor=ToolExecutor(
            rng=rng, order_failure_rate=settings.order_lookup_failure_rate
        ),
        guard=get_hallucination_guard(),
        answer_generator=AnswerGenerator(completion=completion, models=models),
        failure_tracker=FailureTracker(),
        failure_threshold=settings.failure_escalation_threshold,
    )

    logfire.info(
        "Pipeline services built",
        storage_backend=settings.storage_backend,
        models=models,
        max_concurrent_sessions=settings.max_concurrent_sessions,
    )

    return AppServices(
        config_store=config_store,
        conversation_logger=conversation_logger,
        orchestrator=orchestrator,
        admission=SessionAdmission(capacity=settings.max_concurrent_sessions),
    )


def get_services(request: Request) -> AppServices:
    """FastAPI dependency returning the application's services."""
    return request.app.state.services
