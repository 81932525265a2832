"""Labelled evaluation set and metrics for the routing pipeline.

The evaluation runs 30 bilingual (English and Hinglish) queries through a
pipeline runner, compares predicted intent and action with the labels, and
aggregates accuracy, escalation and tool metrics. Rates are percentages.
"""

import time
from typing import Awaitable, Callable

import logfire

from src.models.agent_models import LanguageMode
from src.models.evaluation_models import (
    EvaluationQuery,
    EvaluationResult,
    EvaluationSummary,
)
from src.models.intent_models import Intent
from src.models.response_models import ActionType, AgentResponse

# (agent_id, message, session_id) -> AgentResponse
PipelineRunner = Callable[[str, str, str], Awaitable[AgentResponse]]


def _query(
    query: str,
    intent: Intent,
    action: ActionType,
    language: LanguageMode = LanguageMode.ENGLISH,
) -> EvaluationQuery:
    return EvaluationQuery(
        query=query, expected_intent=intent, expected_action=action, language=language
    )


_HI = LanguageMode.HINGLISH

EVALUATION_DATASET: list[EvaluationQuery] = [
    # Order status
    _query("Where is my order 1234?", Intent.ORDER_STATUS, ActionType.TOOL_CALL),
    _query("Can you check order number 5678?", Intent.ORDER_STATUS, ActionType.TOOL_CALL),
    _query("Track my order 1234", Intent.ORDER_STATUS, ActionType.TOOL_CALL),
    _query("mera order 1234 kaha hai?", Intent.ORDER_STATUS, ActionType.TOOL_CALL, _HI),
    _query("order 5678 ka status batao", Intent.ORDER_STATUS, ActionType.TOOL_CALL, _HI),
    _query(
        "mere order ki location check karo 1234",
        Intent.ORDER_STATUS,
        ActionType.TOOL_CALL,
        _HI,
    ),
    # Ticket creation
    _query(
        "I want to file a complaint about my order",
        Intent.CREATE_TICKET,
        ActionType.TOOL_CALL,
    ),
    _query(
        "Create a support ticket for damaged product",
        Intent.CREATE_TICKET,
        ActionType.TOOL_CALL,
    ),
    _query(
        "I need help with my account access issue",
        Intent.CREATE_TICKET,
        ActionType.TOOL_CALL,
    ),
    _query(
        "mujhe ticket banana hai for refund",
        Intent.CREATE_TICKET,
        ActionType.TOOL_CALL,
        _HI,
    ),
    _query(
        "complaint karna hai product quality ke baare mein",
        Intent.CREATE_TICKET,
        ActionType.TOOL_CALL,
        _HI,
    ),
    # Greetings
    _query("Hello", Intent.GREETING, ActionType.ANSWER),
    _query("Hi there", Intent.GREETING, ActionType.ANSWER),
    _query("Good morning", Intent.GREETING, ActionType.ANSWER),
    _query("Namaste", Intent.GREETING, ActionType.ANSWER, _HI),
    _query("Hello, kaise ho?", Intent.GREETING, ActionType.ANSWER, _HI),
    # General queries
    _query("What are your business hours?", Intent.GENERAL_QUERY, ActionType.ANSWER),
    _query("Do you ship internationally?", Intent.GENERAL_QUERY, ActionType.ANSWER),
    _query("What is your return policy?", Intent.GENERAL_QUERY, ActionType.ANSWER),
    _query("aapka return policy kya hai?", Intent.GENERAL_QUERY, ActionType.ANSWER, _HI),
    _query(
        "international delivery hoti hai kya?",
        Intent.GENERAL_QUERY,
        ActionType.ANSWER,
        _HI,
    ),
    # Complaints
    _query("This is unacceptable service!", Intent.COMPLAINT, ActionType.ESCALATE),
    _query(
        "I am very disappointed with the quality",
        Intent.COMPLAINT,
        ActionType.TOOL_CALL,
    ),
    _query("bahut bura experience hai", Intent.COMPLAINT, ActionType.TOOL_CALL, _HI),
    _query("product bilkul kharab hai", Intent.COMPLAINT, ActionType.TOOL_CALL, _HI),
    # Edge cases
    _query("asdfgh random text xyz", Intent.UNKNOWN, ActionType.ESCALATE),
    _query("", Intent.UNKNOWN, ActionType.ESCALATE),
    # Order intent without an order number
    _query("order", Intent.ORDER_STATUS, ActionType.ESCALATE),
    # Abusive language
    _query("you guys are idiots", Intent.ABUSIVE, ActionType.ESCALATE),
    _query("what the hell is wrong with you", Intent.ABUSIVE, ActionType.ESCALATE),
]


async def evaluate_query(
    runner: PipelineRunner,
    agent_id: str,
    query: EvaluationQuery,
    session_id: str,
) -> EvaluationResult:
    """Run one labelled query and score the response.

    Runner failures are recorded on the result rather than raised.
    """
    try:
        response = await runner(agent_id, query.query, session_id)
    except Exception as e:
        logfire.warning(
            "Evaluation query failed",
            query=query.query,
            error=str(e),
            error_type=type(e).__name__,
        )
        return EvaluationResult(
            query=query.query,
            expected_intent=query.expected_intent,
            expected_action=query.expected_action,
            error=str(e) or type(e).__name__,
        )

    execution = response.tool_execution
    return EvaluationResult(
        query=query.query,
        expected_intent=query.expected_intent,
        predicted_intent=response.intent,
        intent_correct=response.intent == query.expected_intent,
        expected_action=query.expected_action,
        predicted_action=response.action,
        action_correct=response.action == query.expected_action,
        confidence=response.confidence,
        hallucination_blocked=response.hallucination_blocked,
        tool_success=execution.success if execution is not None else None,
        latency_ms=response.timing.total,
    )


def summarize(results: list[EvaluationResult], threshold: float) -> EvaluationSummary:
    """Aggregate per-query results into rates (percent) and averages."""
    total = len(results)
    tool_results = [r.tool_success for r in results if r.tool_success is not None]

    def percent(count: int, of: int) -> float:
        return (count / of) * 100 if of else 0.0

    return EvaluationSummary(
        threshold=threshold,
        total_queries=total,
        intent_accuracy=percent(sum(r.intent_correct for r in results), total),
        action_accuracy=percent(sum(r.action_correct for r in results), total),
        escalation_rate=percent(
            sum(r.predicted_action == ActionType.ESCALATE for r in results), total
        ),
        tool_success_rate=percent(sum(tool_results), len(tool_results)),
        hallucination_block_count=sum(r.hallucination_blocked for r in results),
        average_latency_ms=(sum(r.latency_ms for r in results) / total) if total else 0.0,
        average_confidence=(sum(r.confidence for r in results) / total) if total else 0.0,
        results=results,
    )


async def run_evaluation(
    runner: PipelineRunner,
    agent_id: str,
    threshold: float,
    dataset: list[EvaluationQuery] | None = None,
    on_result: Callable[[int, EvaluationResult], None] | None = None,
) -> EvaluationSummary:
    """Run the labelled dataset sequentially through a pipeline runner.

    Each query gets its own session so failure counters do not carry over.

    Args:
        runner: Coroutine function (agent_id, message, session_id) -> AgentResponse
        agent_id: Agent under evaluation
        threshold: Confidence threshold the agent is configured with
        dataset: Queries to run. Defaults to EVALUATION_DATASET
        on_result: Progress callback receiving (index, result)
    """
    queries = EVALUATION_DATASET if dataset is None else dataset
    run_id = int(time.time() * 1000)
    results: list[EvaluationResult] = []

    with logfire.span(
        "evaluation run", agent_id=agent_id, threshold=threshold, queries=len(queries)
    ):
        for index, query in enumerate(queries):
            result = await evaluate_query(
                runner, agent_id, query, f"eval-{run_id}-{index}"
            )
            results.append(result)
            if on_result is not None:
                on_result(index, result)

    summary = summarize(results, threshold)
    logfire.info(
        "Evaluation complete",
        agent_id=agent_id,
        threshold=threshold,
        intent_accuracy=summary.intent_accuracy,
        action_accuracy=summary.action_accuracy,
        escalation_rate=summary.escalation_rate,
    )
    return summary
