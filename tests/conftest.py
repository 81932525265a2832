"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Completion doubles: FakeCompletionService, fake_completion
2. Randomness: FixedRandom, succeeding_rng, failing_rng, no_sleep
3. Stores: config_store (strict and balanced agents with FAQs), conversation_logger
4. Pipeline: make_orchestrator, orchestrator, scripted_classifier
5. Infrastructure: mock_supabase_client, test_settings, logfire_capture
6. Application: app_services, test_client
"""

import os
import random
from unittest.mock import AsyncMock, MagicMock, patch

import logfire
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from src.api.dependencies import AppServices
from src.config import Settings
from src.db.conversation_log import InMemoryConversationLogger
from src.db.repository import InMemoryConfigStore
from src.main import app
from src.middleware.session_admission import SessionAdmission
from src.models.agent_models import FAQ, AgentConfig, LanguageMode, SafetyMode
from src.models.intent_models import Intent, IntentClassification
from src.services.answer_generator import AnswerGenerator
from src.services.failure_tracker import FailureTracker
from src.services.hallucination_guard import HallucinationGuard
from src.services.intent_classifier import IntentClassifier
from src.services.orchestrator import AgentOrchestrator
from src.services.tool_executor import ToolExecutor

STRICT_AGENT_ID = "strict-agent"
BALANCED_AGENT_ID = "balanced-agent"
TEST_MODEL = "test:model"


# =============================================================================
# Completion doubles
# =============================================================================


class FakeCompletionService:
    """Scripted CompletionService.

    Replies are consumed in order; an Exception instance in the script is
    raised instead of returned. When the script runs out, default_reply is
    returned.
    """

    def __init__(self, replies=None, default_reply: str = ""):
        self.replies = list(replies or [])
        self.default_reply = default_reply
        self.calls: list[dict] = []

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        *,
        model: str | None = None,
    ) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_message": user_message,
                "temperature": temperature,
                "model": model,
            }
        )
        reply = self.replies.pop(0) if self.replies else self.default_reply
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def models_called(self) -> list[str | None]:
        return [call["model"] for call in self.calls]


@pytest.fixture
def fake_completion():
    """Completion double that answers with a cited generic reply."""
    return FakeCompletionService(
        default_reply="Happy to help with that. Source: General reasoning"
    )


# =============================================================================
# Randomness
# =============================================================================


class FixedRandom(random.Random):
    """Seeded random source whose random() draw is fixed.

    random() drives the order_lookup failure decision; randint() keeps the
    seeded behaviour so delays and ticket ids stay deterministic.
    """

    def __init__(self, draw: float, seed: int = 1234):
        super().__init__(seed)
        self.draw = draw

    def random(self) -> float:
        return self.draw

    # Defined so randint() keeps using the seeded bit generator
    def getrandbits(self, k: int) -> int:
        return super().getrandbits(k)


@pytest.fixture
def succeeding_rng():
    """Random source that never triggers the simulated order_lookup outage."""
    return FixedRandom(0.99)


@pytest.fixture
def failing_rng():
    """Random source that always triggers the simulated order_lookup outage."""
    return FixedRandom(0.0)


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def no_sleep():
    """Awaitable sleep that returns immediately."""
    return _no_sleep


@pytest.fixture
def tool_executor(succeeding_rng):
    """Tool executor that never fails order lookups and never sleeps."""
    return ToolExecutor(rng=succeeding_rng, sleep=_no_sleep)


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def config_store():
    """In-memory store with one strict and one balanced agent sharing FAQs."""
    store = InMemoryConfigStore()
    for agent_id, mode in (
        (STRICT_AGENT_ID, SafetyMode.STRICT),
        (BALANCED_AGENT_ID, SafetyMode.BALANCED),
    ):
        store.upsert_agent(
            AgentConfig(
                agent_id=agent_id,
                name=f"{mode.value} agent",
                persona="You are a support assistant for a test store.",
                language_mode=LanguageMode.ENGLISH,
                safety_mode=mode,
                confidence_threshold=0.7,
            )
        )
        store.add_faq(
            FAQ(
                agent_id=agent_id,
                question="What are your business hours?",
                answer="We are open 9am to 6pm.",
            )
        )
        store.add_faq(
            FAQ(
                agent_id=agent_id,
                question="What is your return policy?",
                answer="Returns are accepted within 30 days.",
            )
        )
    return store


@pytest.fixture
def conversation_logger():
    """Empty in-memory conversation logger."""
    return InMemoryConversationLogger()


# =============================================================================
# Pipeline
# =============================================================================


@pytest.fixture
def make_orchestrator(config_store, fake_completion, tool_executor):
    """Factory for orchestrators wired to deterministic collaborators.

    By default classification uses only the keyword rules and generation
    uses fake_completion with a single test model.
    """

    def _make(
        classifier=None,
        completion=None,
        executor=None,
        failure_tracker=None,
        failure_threshold: int = 2,
        store=None,
    ) -> AgentOrchestrator:
        completion = completion or fake_completion
        return AgentOrchestrator(
            config_store=store or config_store,
            classifier=classifier or IntentClassifier(completion=completion, models=[]),
            tool_executor=executor or tool_executor,
            guard=HallucinationGuard(),
            answer_generator=AnswerGenerator(completion=completion, models=[TEST_MODEL]),
            failure_tracker=failure_tracker or FailureTracker(),
            failure_threshold=failure_threshold,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    """Orchestrator with keyword classification and a fake generator."""
    return make_orchestrator()


@pytest.fixture
def scripted_classifier():
    """Factory for a classifier mock that always returns one classification."""

    def _make(intent: Intent, confidence: float) -> MagicMock:
        classifier = MagicMock(spec=IntentClassifier)
        classifier.classify = AsyncMock(
            return_value=IntentClassification(
                intent=intent, confidence=confidence, reasoning="scripted"
            )
        )
        return classifier

    return _make


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def test_settings():
    """Settings with no external services configured."""
    return Settings(
        _env_file=None,
        default_model=TEST_MODEL,
        fallback_models=[],
        storage_backend="memory",
        demo_agent_id="default-agent",
    )


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose query builder chains return itself."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "order", "limit", "insert", "upsert", "update"):
        getattr(query, method).return_value = query
    execute_result = MagicMock()
    execute_result.data = []
    query.execute.return_value = execute_result
    client.table.return_value = query
    return client


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    Patches logfire.info/warning/error and records (level, args, kwargs).
    """
    captured_logs = []

    original_info = logfire.info
    original_warning = logfire.warning
    original_error = logfire.error

    def capture_info(*args, **kwargs):
        captured_logs.append(("info", args, kwargs))
        return original_info(*args, **kwargs)

    def capture_warning(*args, **kwargs):
        captured_logs.append(("warning", args, kwargs))
        return original_warning(*args, **kwargs)

    def capture_error(*args, **kwargs):
        captured_logs.append(("error", args, kwargs))
        return original_error(*args, **kwargs)

    with (
        patch("logfire.info", side_effect=capture_info),
        patch("logfire.warning", side_effect=capture_warning),
        patch("logfire.error", side_effect=capture_error),
    ):
        yield captured_logs


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
def app_services(config_store, conversation_logger, make_orchestrator):
    """AppServices wired to the deterministic pipeline with capacity 2."""
    return AppServices(
        config_store=config_store,
        conversation_logger=conversation_logger,
        orchestrator=make_orchestrator(),
        admission=SessionAdmission(capacity=2),
    )


@pytest.fixture
def test_client(app_services):
    """TestClient whose app uses app_services instead of the lifespan-built ones."""
    app.state.services = app_services
    try:
        yield TestClient(app)
    finally:
        app.state.services = None
