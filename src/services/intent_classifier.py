"""Intent classification with ordered fallback strategies.

Each strategy either returns an IntentClassification or raises a
CompletionError. The classifier walks the strategies in order:

1. One model strategy per configured model (primary first, then fallbacks)
2. The keyword strategy, which is pure and cannot fail

A retryable error moves on to the next strategy. A CompletionUnavailableError
means no model can be reached, so the remaining model strategies are skipped.
"""

import json
import logging
from typing import Any, Protocol

import logfire

from src.config import get_settings
from src.constants import CLASSIFICATION_TEMPERATURE
from src.models.agent_models import LanguageMode
from src.models.intent_models import Intent, IntentClassification
from src.services.completion_service import (
    CompletionError,
    CompletionService,
    CompletionUnavailableError,
    get_completion_service,
)
from src.services.keyword_classifier import classify_by_keywords
from src.services.prompt_templates import render_prompt

logger = logging.getLogger(__name__)

PARSE_FAILURE = IntentClassification(
    intent=Intent.UNKNOWN,
    confidence=0.5,
    reasoning="parse failure",
)


def parse_classification(reply: str) -> IntentClassification:
    """Parse the first well-formed JSON object in a model reply.

    The object must carry a known "intent" and a numeric "confidence".
    Anything else yields the parse-failure classification.
    """
    payload = _first_json_object(reply or "")
    if payload is None:
        return PARSE_FAILURE

    try:
        intent = Intent(payload["intent"])
        confidence = float(payload["confidence"])
    except (KeyError, TypeError, ValueError):
        return PARSE_FAILURE

    if isinstance(payload["confidence"], bool) or confidence != confidence:
        return PARSE_FAILURE

    reasoning = payload.get("reasoning")
    return IntentClassification(
        intent=intent,
        confidence=min(max(confidence, 0.0), 1.0),
        reasoning=str(reasoning) if reasoning is not None else None,
    )


def _first_json_object(text: str) -> dict[str, Any] | None:
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


class ClassificationStrategy(Protocol):
    """One way of turning a message into an intent."""

    name: str

    async def classify(
        self, message: str, language: LanguageMode
    ) -> IntentClassification:
        """Classify or raise CompletionError."""
        ...


class ModelClassificationStrategy:
    """Classify by asking one completion model."""

    def __init__(self, completion: CompletionService, model: str):
        self.completion = completion
        self.model = model
        self.name = f"model:{model}"

    async def classify(
        self, message: str, language: LanguageMode
    ) -> IntentClassification:
        system_prompt = render_prompt(
            "intent_classification", language=language.value
        )
        reply = await self.completion.complete(
            system_prompt,
            message,
            CLASSIFICATION_TEMPERATURE,
            model=self.model,
        )
        classification = parse_classification(reply)
        if classification is PARSE_FAILURE:
            logfire.warning(
                "Failed to parse intent classification",
                model=self.model,
                reply_preview=reply[:200],
            )
        return classification


class KeywordClassificationStrategy:
    """Classify with the deterministic keyword rules."""

    name = "keyword"

    async def classify(
        self, message: str, language: LanguageMode
    ) -> IntentClassification:
        return classify_by_keywords(message)


class IntentClassifier:
    """Classify customer messages, degrading to keywords when models fail.

    Example:
        >>> classifier = IntentClassifier(completion=service, models=["a", "b"])
        >>> result = await classifier.classify("Where is order 1234?")
        >>> result.intent
        <Intent.ORDER_STATUS: 'order_status'>
    """

    def __init__(
        self,
        completion: CompletionService | None = None,
        models: list[str] | None = None,
    ):
        """Initialize the classifier.

        Args:
            completion: Completion backend. Uses get_completion_service() if not provided.
            models: Ordered model ids. Defaults to settings.model_chain
        """
        completion = completion or get_completion_service()
        models = models if models is not None else get_settings().model_chain
        self.fallback_strategy = KeywordClassificationStrategy()
        self.strategies: list[ClassificationStrategy] = [
            ModelClassificationStrategy(completion, model) for model in models
        ]
        self.strategies.append(self.fallback_strategy)

    async def classify(
        self,
        message: str,
        language: LanguageMode = LanguageMode.ENGLISH,
    ) -> IntentClassification:
        """Classify a message. Never raises.

        Args:
            message: Customer message
            language: Agent language mode, passed to the model as a hint

        Returns:
            IntentClassification from the first strategy that succeeds
        """
        for strategy in self.strategies:
            try:
                result = await strategy.classify(message, language)
            except CompletionUnavailableError as e:
                logfire.warning(
                    "Completion service unavailable, using keyword fallback",
                    strategy=strategy.name,
                    error=str(e),
                )
                break
            except CompletionError as e:
                logfire.info(
                    "Classification strategy failed, trying next",
                    strategy=strategy.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            except Exception as e:
                logger.error(f"Unexpected classification error: {e}", exc_info=True)
                continue

            self._log_result(strategy.name, result)
            return result

        result = await self.fallback_strategy.classify(message, language)
        self._log_result(self.fallback_strategy.name, result)
        return result

    @staticmethod
    def _log_result(strategy_name: str, result: IntentClassification) -> None:
        logfire.info(
            "Intent classified",
            strategy=strategy_name,
            intent=result.intent.value,
            confidence=result.confidence,
        )

