"""Message routing state machine.

AgentOrchestrator takes one customer message through the pipeline:
classify, gate (abusive, confidence, repeated failures), route to
answer / tool_call / escalate, guard, and compose the AgentResponse.

Every outcome other than a missing agent is returned as a response;
escalations carry a machine-readable reason in metadata.
"""

from __future__ import annotations

import json
import time
from typing import Any

import logfire

from src.config import get_settings
from src.db.repository import ConfigStore
from src.models.agent_models import AgentConfig, SafetyMode
from src.models.intent_models import Intent, IntentClassification
from src.models.response_models import (
    ActionType,
    AgentResponse,
    AnswerSource,
    ResponseTiming,
    SafetyStatus,
    ToolExecution,
)
from src.services.answer_generator import AnswerGenerationError, AnswerGenerator
from src.services.failure_tracker import FailureTracker
from src.services.faq_matcher import find_faq_match
from src.services.hallucination_guard import (
    HallucinationGuard,
    get_hallucination_guard,
)
from src.services.intent_classifier import IntentClassifier
from src.services.parameter_extraction import extract_tool_parameters
from src.services.tool_executor import ToolExecutor, get_tool_executor

ESCALATION_ANSWER = "I need to connect you with a human agent for better assistance."
VERIFY_WITH_HUMAN_ANSWER = (
    "I need to verify this information with a human agent to ensure accuracy."
)
GENERAL_CONTEXT = "General knowledge and reasoning"

CITATION_LABELS = {
    AnswerSource.FAQ: "FAQ",
    AnswerSource.TOOL: "Tool",
    AnswerSource.GENERATED: "General reasoning",
}


class OrchestratorError(Exception):
    """Base exception for orchestration errors."""

    pass


class AgentNotFoundError(OrchestratorError):
    """Raised when the requested agent has no configuration."""

    def __init__(self, agent_id: str):
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


def determine_action(intent: Intent) -> ActionType:
    """Map an intent to the action the router takes for it."""
    match intent:
        case Intent.ORDER_STATUS | Intent.CREATE_TICKET:
            return ActionType.TOOL_CALL
        case Intent.ABUSIVE | Intent.UNKNOWN:
            return ActionType.ESCALATE
        case (
            Intent.GREETING
            | Intent.GENERAL_QUERY
            | Intent.COMPLAINT
            | Intent.REFUND_REQUEST
            | Intent.PRODUCT_INQUIRY
            | Intent.ACCOUNT_ISSUE
            | Intent.FEEDBACK
        ):
            return ActionType.ANSWER
    raise ValueError(f"Unhandled intent: {intent!r}")


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


class AgentOrchestrator:
    """Route customer messages to an answer, a tool call or a human.

    Collaborators are injected so tests can substitute deterministic
    doubles. The failure tracker is owned by the orchestrator's creator and
    shared across requests.

    Example:
        >>> orchestrator = AgentOrchestrator(config_store=store)
        >>> response = await orchestrator.process_message("agent-1", "Hi", "s-1")
        >>> response.action
        <ActionType.ANSWER: 'answer'>
    """

    def __init__(
        self,
        config_store: ConfigStore,
        classifier: IntentClassifier | None = None,
        tool_executor: ToolExecutor | None = None,
        guard: HallucinationGuard | None = None,
        answer_generator: AnswerGenerator | None = None,
        failure_tracker: FailureTracker | None = None,
        failure_threshold: int | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            config_store: Agent, tool and FAQ configuration lookup
            classifier: Intent classifier. Built from settings if not provided
            tool_executor: Tool executor. Uses get_tool_executor() if not provided
            guard: Hallucination guard. Uses get_hallucination_guard() if not provided
            answer_generator: Answer generator. Built from settings if not provided
            failure_tracker: Tool failure counters. A fresh tracker if not provided
            failure_threshold: Failures per session and intent that force escalation
        """
        self.config_store = config_store
        self.classifier = classifier or IntentClassifier()
        self.tool_executor = tool_executor or get_tool_executor()
        self.guard = guard or get_hallucination_guard()
        self.answer_generator = answer_generator or AnswerGenerator()
        self.failure_tracker = failure_tracker or FailureTracker()
        self.failure_threshold = (
            failure_threshold
            if failure_threshold is not None
            else get_settings().failure_escalation_threshold
        )

    async def process_message(
        self,
        agent_id: str,
        message: str,
        session_id: str,
    ) -> AgentResponse:
        """Run one message through the pipeline.

        Args:
            agent_id: Agent whose configuration drives the run
            message: Customer message
            session_id: Conversation id used for failure counting

        Returns:
            AgentResponse describing the outcome

        Raises:
            AgentNotFoundError: If the agent has no configuration
        """
        total_start = time.perf_counter()

        agent = self.config_store.get_agent(agent_id)
        if agent is None:
            logfire.error("Agent not found", agent_id=agent_id)
            raise AgentNotFoundError(agent_id)

        classification_start = time.perf_counter()
        classification = await self.classifier.classify(message, agent.language_mode)
        classification_ms = _elapsed_ms(classification_start)

        response = await self._route(
            agent, message, session_id, classification, classification_ms, total_start
        )

        logfire.info(
            "Message routed",
            agent_id=agent_id,
            session_id=session_id,
            intent=response.intent.value,
            confidence=response.confidence,
            action=response.action.value,
            safety_status=response.safety_status.value,
            escalation_reason=response.escalation_reason,
            total_ms=response.timing.total,
        )
        return response

    async def _route(
        self,
        agent: AgentConfig,
        message: str,
        session_id: str,
        classification: IntentClassification,
        classification_ms: int,
        total_start: float,
    ) -> AgentResponse:
        intent = classification.intent
        confidence = classification.confidence

        def escalate(reason: str) -> AgentResponse:
            return self._escalation_response(
                intent,
                confidence,
                reason,
                ResponseTiming(
                    intent_classification=classification_ms,
                    total=_elapsed_ms(total_start),
                ),
            )

        if intent == Intent.ABUSIVE or self.guard.contains_abusive_content(message):
            return escalate("Abusive language detected")

        # Threshold is inclusive: equal confidence is accepted
        if confidence < agent.confidence_threshold:
            return escalate("Confidence below threshold")

        if self.failure_tracker.get(session_id, intent) >= self.failure_threshold:
            return escalate("Repeated tool failures")

        match determine_action(intent):
            case ActionType.TOOL_CALL:
                return await self._handle_tool_call(
                    agent,
                    message,
                    session_id,
                    intent,
                    confidence,
                    classification_ms,
                    total_start,
                )
            case ActionType.ANSWER:
                return await self._handle_answer(
                    agent, message, intent, confidence, classification_ms, total_start
                )
            case ActionType.ESCALATE:
                return escalate("Intent requires human assistance")

    async def _handle_tool_call(
        self,
        agent: AgentConfig,
        message: str,
        session_id: str,
        intent: Intent,
        confidence: float,
        classification_ms: int,
        total_start: float,
    ) -> AgentResponse:
        def escalate(reason: str) -> AgentResponse:
            return self._escalation_response(
                intent,
                confidence,
                reason,
                ResponseTiming(
                    intent_classification=classification_ms,
                    total=_elapsed_ms(total_start),
                ),
            )

        params = extract_tool_parameters(intent, message)
        if not params.valid or params.tool_name is None:
            return escalate(params.reason or "Missing required parameters")

        tool_name = params.tool_name.value
        tool_config = self.config_store.get_tool_config(agent.agent_id, params.tool_name)
        if tool_config is None:
            return escalate(
                f"Tool config failure: missing configuration for {tool_name}"
            )
        if not tool_config.enabled:
            return escalate(f"Tool config failure: {tool_name} is disabled")

        execution = await self.tool_executor.execute_tool(
            tool_name, params.arguments or {}
        )

        if not execution.success:
            self.failure_tracker.increment(session_id, intent)
            return AgentResponse(
                intent=intent,
                confidence=confidence,
                action=ActionType.ESCALATE,
                tool_execution=execution,
                answer=(
                    f"I encountered an error: {execution.error}. "
                    "Let me connect you with a human agent."
                ),
                answer_source=AnswerSource.ESCALATED,
                safety_status=SafetyStatus.ESCALATED,
                timing=ResponseTiming(
                    intent_classification=classification_ms,
                    tool_execution=execution.latency_ms,
                    total=_elapsed_ms(total_start),
                ),
            )

        self.failure_tracker.reset(session_id, intent)

        answer_start = time.perf_counter()

        def timing() -> ResponseTiming:
            return ResponseTiming(
                intent_classification=classification_ms,
                tool_execution=execution.latency_ms,
                answer_generation=_elapsed_ms(answer_start),
                total=_elapsed_ms(total_start),
            )

        answer = self.guard.get_templated_response(intent, execution.result)
        if answer is None:
            context = json.dumps(execution.result or {})
            try:
                answer = await self.answer_generator.generate(message, context, agent)
            except AnswerGenerationError:
                return self._escalation_response(
                    intent,
                    confidence,
                    "Answer generation unavailable",
                    timing(),
                    tool_execution=execution,
                )

            check = self.guard.check_answer(answer, context, intent, agent.safety_mode)
            if not check.safe:
                return AgentResponse(
                    intent=intent,
                    confidence=confidence,
                    action=ActionType.ESCALATE,
                    tool_execution=execution,
                    answer=VERIFY_WITH_HUMAN_ANSWER,
                    answer_source=AnswerSource.ESCALATED,
                    safety_status=SafetyStatus.BLOCKED,
                    hallucination_blocked=True,
                    timing=timing(),
                    metadata={"blockReason": check.reason},
                )

        return AgentResponse(
            intent=intent,
            confidence=confidence,
            action=ActionType.TOOL_CALL,
            tool_execution=execution,
            answer=self.ensure_balanced_citation(
                answer, agent.safety_mode, AnswerSource.TOOL
            ),
            answer_source=AnswerSource.TOOL,
            safety_status=SafetyStatus.SAFE,
            timing=timing(),
        )

    async def _handle_answer(
        self,
        agent: AgentConfig,
        message: str,
        intent: Intent,
        confidence: float,
        classification_ms: int,
        total_start: float,
    ) -> AgentResponse:
        answer_start = time.perf_counter()

        def timing() -> ResponseTiming:
            return ResponseTiming(
                intent_classification=classification_ms,
                answer_generation=_elapsed_ms(answer_start),
                total=_elapsed_ms(total_start),
            )

        faq = find_faq_match(self.config_store.get_faqs(agent.agent_id), message)
        if faq is not None:
            return self._answer_response(
                intent,
                confidence,
                self.ensure_balanced_citation(
                    faq.answer, agent.safety_mode, AnswerSource.FAQ
                ),
                AnswerSource.FAQ,
                timing(),
            )

        # Strict agents only answer from verified sources
        if agent.safety_mode == SafetyMode.STRICT:
            return self._escalation_response(
                intent, confidence, "No FAQ match in strict mode", timing()
            )

        try:
            answer = await self.answer_generator.generate(
                message, GENERAL_CONTEXT, agent
            )
        except AnswerGenerationError:
            return self._escalation_response(
                intent, confidence, "Answer generation unavailable", timing()
            )

        return self._answer_response(
            intent,
            confidence,
            self.ensure_balanced_citation(
                answer, agent.safety_mode, AnswerSource.GENERATED
            ),
            AnswerSource.GENERATED,
            timing(),
        )

    def ensure_balanced_citation(
        self, answer: str, safety_mode: SafetyMode, source: AnswerSource
    ) -> str:
        """Append a Source line to balanced-mode answers that cite nothing."""
        if safety_mode != SafetyMode.BALANCED:
            return answer
        if self.guard.validate_source_citation(answer, safety_mode):
            return answer
        label = CITATION_LABELS.get(source, "General reasoning")
        return f"{answer}\n\nSource: {label}"

    @staticmethod
    def _answer_response(
        intent: Intent,
        confidence: float,
        answer: str,
        source: AnswerSource,
        timing: ResponseTiming,
    ) -> AgentResponse:
        return AgentResponse(
            intent=intent,
            confidence=confidence,
            action=ActionType.ANSWER,
            answer=answer,
            answer_source=source,
            safety_status=SafetyStatus.SAFE,
            timing=timing,
        )

    @staticmethod
    def _escalation_response(
        intent: Intent,
        confidence: float,
        reason: str,
        timing: ResponseTiming,
        tool_execution: ToolExecution | None = None,
    ) -> AgentResponse:
        metadata: dict[str, Any] = {"escalationReason": reason}
        return AgentResponse(
            intent=intent,
            confidence=confidence,
            action=ActionType.ESCALATE,
            tool_execution=tool_execution,
            answer=ESCALATION_ANSWER,
            answer_source=AnswerSource.ESCALATED,
            safety_status=SafetyStatus.ESCALATED,
            timing=timing,
            metadata=metadata,
        )

