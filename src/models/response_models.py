"""Pipeline outcome models.

AgentResponse is the only artifact a caller observes from one pipeline run.
ToolExecution and ResponseTiming are nested inside it.
"""

from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from src.models.base import CamelModel
from src.models.intent_models import Intent


class ActionType(str, Enum):
    """Terminal outcome of the routing state machine."""

    ANSWER = "answer"
    TOOL_CALL = "tool_call"
    ESCALATE = "escalate"


class AnswerSource(str, Enum):
    """Where the answer text came from."""

    FAQ = "faq"
    TOOL = "tool"
    GENERATED = "generated"
    ESCALATED = "escalated"


class SafetyStatus(str, Enum):
    """Safety verdict attached to the answer."""

    SAFE = "safe"
    BLOCKED = "blocked"
    ESCALATED = "escalated"


class ToolExecution(CamelModel):
    """Record of a single tool invocation."""

    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    success: bool
    result: dict[str, Any] | None = None
    error: str | None = None
    latency_ms: int = Field(default=0, ge=0)


class ResponseTiming(CamelModel):
    """Per-stage timings in milliseconds."""

    intent_classification: int = 0
    tool_execution: int | None = None
    answer_generation: int = 0
    total: int = 0


class AgentResponse(CamelModel):
    """Outcome of processing one customer message."""

    intent: Intent
    confidence: float = Field(..., ge=0.0, le=1.0)
    action: ActionType
    tool_execution: ToolExecution | None = None
    answer: str
    answer_source: AnswerSource
    safety_status: SafetyStatus
    hallucination_blocked: bool = False
    timing: ResponseTiming = Field(default_factory=ResponseTiming)
    metadata: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _blocked_answers_are_escalations(self) -> "AgentResponse":
        if self.hallucination_blocked and (
            self.safety_status != SafetyStatus.BLOCKED
            or self.action != ActionType.ESCALATE
        ):
            raise ValueError(
                "hallucination_blocked responses must be blocked escalations"
            )
        return self

    @property
    def escalation_reason(self) -> str | None:
        """Machine-readable reason for an escalation, if any."""
        if not self.metadata:
            return None
        return self.metadata.get("escalationReason") or self.metadata.get(
            "blockReason"
        )
