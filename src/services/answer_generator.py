"""Answer generation through the completion model chain."""

import logfire

from src.config import get_settings
from src.constants import GENERATION_TEMPERATURE
from src.models.agent_models import AgentConfig, SafetyMode
from src.services.completion_service import (
    CompletionError,
    CompletionService,
    CompletionUnavailableError,
    get_completion_service,
)
from src.services.prompt_templates import render_prompt

STRICT_MODE_INSTRUCTIONS = (
    "STRICT MODE: Only answer using the provided context. If information is "
    "not in context, say you need to escalate or clarify."
)

BALANCED_MODE_INSTRUCTIONS = (
    "BALANCED MODE: You may generate responses but MUST cite your source "
    "(FAQ/Tool/General reasoning). Refuse if required information is missing."
)


class AnswerGenerationError(Exception):
    """Raised when no model could produce an answer."""

    pass


class AnswerGenerator:
    """Generate customer-facing answers from a source context."""

    def __init__(
        self,
        completion: CompletionService | None = None,
        models: list[str] | None = None,
    ):
        self.completion = completion or get_completion_service()
        self.models = models if models is not None else get_settings().model_chain

    def build_system_prompt(self, agent: AgentConfig, context: str) -> str:
        """Render the generation prompt for an agent and source context."""
        instructions = (
            STRICT_MODE_INSTRUCTIONS
            if agent.safety_mode == SafetyMode.STRICT
            else BALANCED_MODE_INSTRUCTIONS
        )
        return render_prompt(
            "answer_generation",
            persona=agent.persona,
            language=agent.language_mode.value,
            safety_mode=agent.safety_mode.value,
            context=context,
            mode_instructions=instructions,
        )

    async def generate(self, message: str, context: str, agent: AgentConfig) -> str:
        """Generate an answer, trying each model in order.

        Raises:
            AnswerGenerationError: If every model failed or the service is unavailable
        """
        system_prompt = self.build_system_prompt(agent, context)
        last_error: CompletionError | None = None

        for model in self.models:
            try:
                return await self.completion.complete(
                    system_prompt,
                    message,
                    GENERATION_TEMPERATURE,
                    model=model,
                )
            except CompletionUnavailableError as e:
                last_error = e
                break
            except CompletionError as e:
                logfire.info(
                    "Answer generation failed, trying next model",
                    model=model,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                last_error = e

        logfire.error(
            "Answer generation unavailable",
            agent_id=agent.agent_id,
            models=self.models,
            error=str(last_error) if last_error else None,
        )
        raise AnswerGenerationError(
            str(last_error) if last_error else "No completion models configured"
        )
