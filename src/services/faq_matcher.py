"""Keyword-overlap FAQ matching."""

import math

from src.constants import FAQ_KEYWORD_MATCH_RATIO, FAQ_KEYWORD_MIN_EXCLUSIVE_LENGTH
from src.models.agent_models import FAQ


def question_keywords(question: str) -> list[str]:
    """Lowercased whitespace tokens of a question longer than three characters."""
    return [
        word
        for word in question.lower().split()
        if len(word) > FAQ_KEYWORD_MIN_EXCLUSIVE_LENGTH
    ]


def find_faq_match(faqs: list[FAQ], message: str) -> FAQ | None:
    """Return the first FAQ whose keywords sufficiently overlap the message.

    A FAQ matches when at least half (rounded up) of its question keywords
    occur as substrings of the lowercased message. FAQs are checked in the
    order given.
    """
    message_lower = (message or "").lower()

    for faq in faqs:
        keywords = question_keywords(faq.question)
        matched = sum(1 for keyword in keywords if keyword in message_lower)
        if matched >= math.ceil(len(keywords) * FAQ_KEYWORD_MATCH_RATIO):
            return faq

    return None
