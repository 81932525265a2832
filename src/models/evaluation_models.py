"""Evaluation harness models."""

from pydantic import Field

from src.models.agent_models import LanguageMode
from src.models.base import CamelModel
from src.models.intent_models import Intent
from src.models.response_models import ActionType


class EvaluationQuery(CamelModel):
    """A labelled query from the evaluation set."""

    query: str
    expected_intent: Intent
    expected_action: ActionType
    language: LanguageMode = LanguageMode.ENGLISH


class EvaluationResult(CamelModel):
    """Outcome of running one labelled query through the pipeline."""

    query: str
    expected_intent: Intent
    predicted_intent: Intent | None = None
    intent_correct: bool = False
    expected_action: ActionType
    predicted_action: ActionType | None = None
    action_correct: bool = False
    confidence: float = 0.0
    hallucination_blocked: bool = False
    tool_success: bool | None = None
    latency_ms: int = 0
    error: str | None = None


class EvaluationSummary(CamelModel):
    """Aggregate metrics over an evaluation run."""

    threshold: float
    total_queries: int
    intent_accuracy: float
    action_accuracy: float
    escalation_rate: float
    tool_success_rate: float
    hallucination_block_count: int
    average_latency_ms: float
    average_confidence: float
    results: list[EvaluationResult] = Field(default_factory=list)
