"""Typer-based evaluation and chat CLI."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent.parent
from dotenv import load_dotenv

load_dotenv(_project_root / ".env")
load_dotenv(_project_root / ".env.local")

import asyncio

import httpx
import questionary
import typer

from src.api.dependencies import AppServices, build_services
from src.config import get_settings
from src.db.repository import InMemoryConfigStore
from src.models.agent_models import SafetyMode
from src.models.evaluation_models import EvaluationResult, EvaluationSummary
from src.models.response_models import ActionType, AgentResponse
from src.services.evaluation import EVALUATION_DATASET, run_evaluation

app = typer.Typer(help="Evaluate and chat with the routing pipeline.")

ABLATION_THRESHOLDS = (0.6, 0.8)
HTTP_TIMEOUT_SECONDS = 60.0


def _run_async_with_cleanup(coro):
    """
    Run a coroutine on a fresh event loop and close it afterwards.

    Pending tasks are cancelled and async generators shut down even when the
    coroutine raises.
    """
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coro)
    finally:
        try:
            pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()
            asyncio.set_event_loop(None)


def _build_local_services(
    agent_id: str,
    offline: bool,
    threshold: float | None = None,
    safety_mode: SafetyMode | None = None,
) -> AppServices:
    """Build an in-process pipeline with a seeded in-memory demo agent.

    Offline mode configures no completion models, so classification uses the
    keyword fallback and generation escalates.
    """
    updates: dict = {"storage_backend": "memory", "demo_agent_id": agent_id}
    if offline:
        updates.update(default_model="", fallback_models=[])
    services = build_services(get_settings().model_copy(update=updates))

    store = services.config_store
    assert isinstance(store, InMemoryConfigStore)
    agent = store.get_agent(agent_id)
    changes: dict = {}
    if threshold is not None:
        changes["confidence_threshold"] = threshold
    if safety_mode is not None:
        changes["safety_mode"] = safety_mode
    if agent is not None and changes:
        store.upsert_agent(agent.model_copy(update=changes))
    return services


async def _evaluate_over_http(
    api_url: str, agent_id: str, threshold: float
) -> EvaluationSummary:
    base_url = api_url.rstrip("/")
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:

        async def runner(agent: str, message: str, session_id: str) -> AgentResponse:
            response = await client.post(
                f"{base_url}/run",
                json={"agentId": agent, "message": message, "sessionId": session_id},
            )
            response.raise_for_status()
            return AgentResponse.model_validate(response.json())

        return await run_evaluation(
            runner, agent_id, threshold, on_result=_echo_progress
        )


def _echo_progress(index: int, result: EvaluationResult) -> None:
    ok = result.intent_correct and result.action_correct
    mark = "ERROR" if result.error else ("ok" if ok else "MISS")
    typer.echo(
        f"[{index + 1}/{len(EVALUATION_DATASET)}] {result.query[:40]!r:44} {mark}"
    )


def _print_summary(summary: EvaluationSummary) -> None:
    typer.echo("\n" + "=" * 55)
    typer.echo("EVALUATION RESULTS")
    typer.echo("=" * 55)
    typer.echo(f"Confidence Threshold: {summary.threshold:.2f}")
    typer.echo(f"Intent Accuracy:      {summary.intent_accuracy:.2f}%")
    typer.echo(f"Action Accuracy:      {summary.action_accuracy:.2f}%")
    typer.echo(f"Escalation Rate:      {summary.escalation_rate:.2f}%")
    typer.echo(f"Tool Success Rate:    {summary.tool_success_rate:.2f}%")
    typer.echo(f"Hallucination Blocks: {summary.hallucination_block_count}")
    typer.echo(f"Average Latency:      {summary.average_latency_ms:.0f}ms")
    typer.echo(f"Average Confidence:   {summary.average_confidence * 100:.1f}%")
    typer.echo("=" * 55)


def _print_comparison(low: EvaluationSummary, high: EvaluationSummary) -> None:
    typer.echo("\nThreshold comparison\n")
    typer.echo(f"{'Metric':<20} | {low.threshold:>7.2f} | {high.threshold:>7.2f} | {'delta':>7}")
    typer.echo("-" * 50)
    for label, attr in (
        ("Intent Accuracy", "intent_accuracy"),
        ("Action Accuracy", "action_accuracy"),
        ("Escalation Rate", "escalation_rate"),
        ("Tool Success Rate", "tool_success_rate"),
        ("Avg Latency (ms)", "average_latency_ms"),
    ):
        a, b = getattr(low, attr), getattr(high, attr)
        typer.echo(f"{label:<20} | {a:>7.1f} | {b:>7.1f} | {b - a:>+7.1f}")


def _run_once(
    agent_id: str, threshold: float, api_url: str | None, offline: bool
) -> EvaluationSummary:
    if api_url:
        # The remote agent keeps its own threshold; it is only recorded here
        return _run_async_with_cleanup(
            _evaluate_over_http(api_url, agent_id, threshold)
        )
    services = _build_local_services(agent_id, offline, threshold=threshold)
    return _run_async_with_cleanup(
        run_evaluation(
            services.orchestrator.process_message,
            agent_id,
            threshold,
            on_result=_echo_progress,
        )
    )


@app.command()
def evaluate(
    agent_id: str = typer.Option("default-agent", help="Agent to evaluate"),
    threshold: float = typer.Option(
        0.7, min=0.5, max=0.9, help="Confidence threshold (in-process runs)"
    ),
    api_url: str | None = typer.Option(
        None, help="Evaluate a running service instead of an in-process pipeline"
    ),
    output: Path | None = typer.Option(None, help="Write the summary as JSON"),
    offline: bool = typer.Option(
        False, help="In-process only: skip completion models, use keyword routing"
    ),
    ablation: bool = typer.Option(
        False, help="Run at thresholds 0.6 and 0.8 and compare"
    ),
):
    """Run the 30-query labelled evaluation set."""
    typer.echo(f"Agent ID: {agent_id}")
    typer.echo(f"Target: {api_url or 'in-process pipeline'}")
    typer.echo(f"Test Queries: {len(EVALUATION_DATASET)}\n")

    if ablation:
        summaries = []
        for value in ABLATION_THRESHOLDS:
            typer.echo(f"\nRunning evaluation with threshold = {value:.2f}...\n")
            summary = _run_once(agent_id, value, api_url, offline)
            _print_summary(summary)
            summaries.append(summary)
        _print_comparison(*summaries)
        if output:
            output.write_text(
                "[" + ",\n".join(
                    s.model_dump_json(by_alias=True, indent=2) for s in summaries
                ) + "]\n"
            )
            typer.echo(f"\nResults saved to: {output}")
        return

    summary = _run_once(agent_id, threshold, api_url, offline)
    _print_summary(summary)
    if output:
        output.write_text(summary.model_dump_json(by_alias=True, indent=2) + "\n")
        typer.echo(f"\nResults saved to: {output}")


def _select_safety_mode() -> SafetyMode:
    """Arrow-key selection for the chat agent's safety mode."""
    choice = questionary.select(
        "Safety mode for this chat",
        choices=[
            questionary.Choice("Balanced (may generate, must cite)", value="balanced"),
            questionary.Choice("Strict (FAQ and tools only)", value="strict"),
        ],
    ).ask()
    if choice is None:
        raise typer.Exit(0)
    return SafetyMode(choice)


def _describe(response: AgentResponse) -> str:
    details = (
        f"  [intent: {response.intent.value} ({response.confidence:.2f}), "
        f"action: {response.action.value}"
    )
    if response.tool_execution is not None:
        status = "ok" if response.tool_execution.success else "failed"
        details += f", tool: {response.tool_execution.tool_name} {status}"
    if response.escalation_reason:
        details += f", reason: {response.escalation_reason}"
    return details + "]"


@app.command()
def chat(
    agent_id: str = typer.Option("default-agent", help="Agent to chat with"),
    safety_mode: SafetyMode | None = typer.Option(
        None, help="Safety mode (asked interactively when omitted)"
    ),
    offline: bool = typer.Option(False, help="Skip completion models"),
):
    """Chat with the in-process pipeline."""
    mode = safety_mode or _select_safety_mode()
    services = _build_local_services(agent_id, offline, safety_mode=mode)
    session_id = f"cli-{os.getpid()}"

    typer.echo(f"\nChatting with {agent_id} in {mode.value} mode (type 'quit' to exit).\n")

    while True:
        user_message = typer.prompt("You (or 'quit' to exit)")
        if not user_message or user_message.strip().lower() == "quit":
            break
        try:
            response = _run_async_with_cleanup(
                services.orchestrator.process_message(
                    agent_id, user_message.strip(), session_id
                )
            )
        except Exception as e:
            typer.echo(f"Error: {e}", err=True)
            continue

        typer.echo(f"Agent: {response.answer}")
        color = (
            typer.colors.YELLOW
            if response.action == ActionType.ESCALATE
            else typer.colors.GREEN
        )
        typer.echo(typer.style(_describe(response), fg=color))

    typer.echo("Exiting chat.\n")


if __name__ == "__main__":
    app()
