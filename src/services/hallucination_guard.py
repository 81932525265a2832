"""Hallucination guard for generated answers.

Validates a candidate answer against the evidence it was generated from and
the agent's safety mode. Also owns abusive-content detection, which is used
both on inbound messages and on outbound answers.
"""

import re
from typing import Any, NamedTuple

import logfire

from src.models.agent_models import SafetyMode
from src.models.intent_models import Intent


class GuardResult(NamedTuple):
    """Result of checking an answer.

    Attributes:
        safe: Whether the answer may be sent to the customer.
        reason: Why the answer was rejected, if it was.
    """

    safe: bool
    reason: str | None = None


# Profanity and insults that trigger escalation wherever they appear
ABUSIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(fuck|fucking|shit|damn|bitch|asshole)\b", re.IGNORECASE),
    re.compile(r"\b(idiots?|stupid|dumb|morons?)\b", re.IGNORECASE),
    re.compile(r"\bwhat\s+the\s+hell\b", re.IGNORECASE),
]


def contains_abusive_content(text: str) -> bool:
    """Return True when text contains abusive or inappropriate language."""
    if not text:
        return False
    return any(pattern.search(text) for pattern in ABUSIVE_PATTERNS)


class HallucinationGuard:
    """Reject answers that make claims their source does not support.

    Checks, in order:
    - Strict mode needs non-empty source context
    - Strict mode forbids authority claims the source does not make
    - Every number in the answer must appear in the source
    - Order/ticket answers must not describe outcomes absent from the source
    - Answers must not contain abusive language
    """

    # Phrasings that assert access to records; strict mode only
    AUTHORITY_CLAIM_PATTERNS: list[tuple[str, str]] = [
        (r"according to our records", "according_to_records"),
        (r"our policy states", "policy_states"),
        (r"we have found", "we_have_found"),
        (r"the data shows", "data_shows"),
    ]

    # Vocabulary that describes a tool outcome, per tool-backed intent
    TOPIC_PATTERNS: dict[Intent, tuple[str, str]] = {
        Intent.ORDER_STATUS: (
            r"order|status|delivery|transit",
            "Order status claims without tool data",
        ),
        Intent.CREATE_TICKET: (
            r"ticket|created|TKT-",
            "Ticket creation claims without tool data",
        ),
    }

    # Phrasings accepted as a source citation in balanced mode
    CITATION_PATTERNS: list[str] = [
        r"based on (faq|tool|our records)",
        r"according to",
        r"from (faq|documentation)",
        r"(faq|tool) (shows|indicates|states)",
        r"source:\s*(faq|tool|general reasoning)",
    ]

    _NUMBER_PATTERN = re.compile(r"\d+")

    def __init__(self) -> None:
        """Compile the regex tables once."""
        self._authority_patterns = [
            (re.compile(pattern, re.IGNORECASE), name)
            for pattern, name in self.AUTHORITY_CLAIM_PATTERNS
        ]
        self._topic_patterns = {
            intent: (re.compile(pattern, re.IGNORECASE), reason)
            for intent, (pattern, reason) in self.TOPIC_PATTERNS.items()
        }
        self._citation_patterns = [
            re.compile(pattern, re.IGNORECASE) for pattern in self.CITATION_PATTERNS
        ]

    def check_answer(
        self,
        answer: str,
        source_context: str,
        intent: Intent,
        safety_mode: SafetyMode,
    ) -> GuardResult:
        """Check an answer against its source evidence.

        Args:
            answer: Candidate answer text.
            source_context: Evidence the answer was generated from.
            intent: Classified intent of the originating message.
            safety_mode: The agent's safety mode.

        Returns:
            GuardResult with the verdict and, when unsafe, the reason.
        """
        source_context = source_context or ""

        if safety_mode == SafetyMode.STRICT:
            if not source_context.strip():
                return self._reject(
                    "Strict mode: No source context available", intent
                )

            for pattern, name in self._authority_patterns:
                if pattern.search(answer) and not pattern.search(source_context):
                    return self._reject(
                        "Strict mode: Answer contains claims not in source",
                        intent,
                        pattern=name,
                    )

        for number in self._NUMBER_PATTERN.findall(answer):
            if number not in source_context:
                return self._reject(
                    f'Numeric claim "{number}" not found in source', intent
                )

        topic = self._topic_patterns.get(intent)
        if topic is not None:
            pattern, reason = topic
            if pattern.search(answer) and not pattern.search(source_context):
                return self._reject(reason, intent)

        if contains_abusive_content(answer):
            return self._reject("Answer contains inappropriate content", intent)

        return GuardResult(safe=True)

    def validate_source_citation(self, answer: str, safety_mode: SafetyMode) -> bool:
        """Check that a balanced-mode answer names its source.

        Strict-mode answers are always considered cited.
        """
        if safety_mode != SafetyMode.BALANCED:
            return True
        return any(pattern.search(answer) for pattern in self._citation_patterns)

    def contains_abusive_content(self, text: str) -> bool:
        """Return True when text contains abusive or inappropriate language."""
        return contains_abusive_content(text)

    def get_templated_response(
        self, intent: Intent, tool_result: dict[str, Any] | None = None
    ) -> str | None:
        """Build a fixed-format answer from literal tool-result fields.

        Returns None when no template applies, which sends the caller down
        the generation path.
        """
        result = tool_result or {}
        match intent:
            case Intent.ORDER_STATUS:
                if not result.get("status"):
                    return None
                location = (
                    f"Location: {result['location']}." if result.get("location") else ""
                )
                estimated = (
                    f"Estimated delivery: {result['estimatedDelivery']}."
                    if result.get("estimatedDelivery")
                    else ""
                )
                return (
                    f"Your order {result.get('orderId')} is currently "
                    f"{result['status']}. {location} {estimated}"
                )
            case Intent.CREATE_TICKET:
                if not result.get("ticketId"):
                    return None
                return (
                    f"Your support ticket {result['ticketId']} has been created "
                    "successfully. Our team will review it shortly."
                )
            case Intent.ABUSIVE:
                return (
                    "I understand you may be frustrated. Let me escalate this to "
                    "a human agent who can better assist you."
                )
            case _:
                return None

    def _reject(self, reason: str, intent: Intent, **attributes: Any) -> GuardResult:
        logfire.warning(
            "Answer blocked by hallucination guard",
            reason=reason,
            intent=intent.value,
            **attributes,
        )
        return GuardResult(safe=False, reason=reason)


# Global instance
_guard: HallucinationGuard | None = None


def get_hallucination_guard() -> HallucinationGuard:
    """Get the global hallucination guard instance."""
    global _guard
    if _guard is None:
        _guard = HallucinationGuard()
    return _guard


def reset_hallucination_guard() -> None:
    """Reset the global hallucination guard (primarily for testing)."""
    global _guard
    _guard = None
