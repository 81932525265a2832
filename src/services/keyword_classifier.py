"""Deterministic keyword-based intent classification.

Used when no completion model can be reached. Rules are applied in order and
the first match wins, so the result depends only on the message text.
"""

import re
from typing import NamedTuple

from src.models.intent_models import Intent, IntentClassification
from src.services.hallucination_guard import contains_abusive_content


class KeywordRule(NamedTuple):
    """One ordered fallback rule."""

    name: str
    pattern: re.Pattern[str]
    intent: Intent
    confidence: float


def _words(*alternatives: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b", re.IGNORECASE)


GREETING_PATTERN = _words(
    "hi",
    "hello",
    "hey",
    "hiya",
    "howdy",
    "greetings",
    "namaste",
    "namaskar",
    r"good\s+(?:morning|afternoon|evening)",
)

ORDER_PATTERN = _words(
    "orders?",
    "track(?:ing)?",
    "shipment",
    "parcel",
    "package",
)

ORDER_NUMBER_PATTERN = re.compile(r"\d{4,}")

# Applied after the order rules, which need the order-number lookahead
KEYWORD_RULES: list[KeywordRule] = [
    KeywordRule(
        name="support_ticket",
        pattern=_words(
            "tickets?",
            "support",
            "complaint",
            "complain",
            r"file\s+a",
            r"help\s+desk",
        ),
        intent=Intent.CREATE_TICKET,
        confidence=0.75,
    ),
    KeywordRule(
        name="refund",
        pattern=_words(
            "refunds?",
            "returns?",
            "cancel(?:led|lation)?",
            r"money\s+back",
            "wapas",
        ),
        intent=Intent.REFUND_REQUEST,
        confidence=0.75,
    ),
    KeywordRule(
        name="complaint_sentiment",
        pattern=_words(
            "disappointed",
            "unacceptable",
            "terrible",
            "horrible",
            "worst",
            "awful",
            "unhappy",
            "damaged",
            "broken",
            "bura",
            "kharab",
        ),
        intent=Intent.COMPLAINT,
        confidence=0.70,
    ),
    KeywordRule(
        name="account",
        pattern=_words(
            "account",
            "login",
            r"log\s+in",
            r"sign\s+in",
            "password",
            "username",
        ),
        intent=Intent.ACCOUNT_ISSUE,
        confidence=0.70,
    ),
    KeywordRule(
        name="product",
        pattern=_words(
            "products?",
            "price",
            "cost",
            "stock",
            "available",
            "availability",
            "warranty",
            "size",
            "colou?r",
            "features?",
        ),
        intent=Intent.PRODUCT_INQUIRY,
        confidence=0.65,
    ),
    KeywordRule(
        name="business_info",
        pattern=_words(
            "hours",
            "open",
            "timings?",
            "address",
            "contact",
            "phone",
            "email",
            "ship(?:ping)?",
            "internationally",
            "international",
            "policy",
            "delivery",
        ),
        intent=Intent.GENERAL_QUERY,
        confidence=0.60,
    ),
]


def classify_by_keywords(message: str) -> IntentClassification:
    """Classify a message with ordered keyword rules.

    Args:
        message: Raw customer message.

    Returns:
        IntentClassification whose reasoning names the rule that fired.
    """
    text = (message or "").strip()

    if not text:
        return IntentClassification(
            intent=Intent.UNKNOWN,
            confidence=0.4,
            reasoning="Keyword fallback: empty message",
        )

    if contains_abusive_content(text):
        return IntentClassification(
            intent=Intent.ABUSIVE,
            confidence=0.9,
            reasoning="Keyword fallback: abusive language",
        )

    if GREETING_PATTERN.search(text):
        return IntentClassification(
            intent=Intent.GREETING,
            confidence=0.85,
            reasoning="Keyword fallback: greeting",
        )

    if ORDER_PATTERN.search(text):
        if ORDER_NUMBER_PATTERN.search(text):
            return IntentClassification(
                intent=Intent.ORDER_STATUS,
                confidence=0.85,
                reasoning="Keyword fallback: order keyword with order number",
            )
        return IntentClassification(
            intent=Intent.ORDER_STATUS,
            confidence=0.65,
            reasoning="Keyword fallback: order keyword without order number",
        )

    for rule in KEYWORD_RULES:
        if rule.pattern.search(text):
            return IntentClassification(
                intent=rule.intent,
                confidence=rule.confidence,
                reasoning=f"Keyword fallback: {rule.name}",
            )

    return IntentClassification(
        intent=Intent.UNKNOWN,
        confidence=0.45,
        reasoning="Keyword fallback: no rule matched",
    )
