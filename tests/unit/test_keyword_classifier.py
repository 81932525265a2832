"""Tests for the deterministic keyword fallback classifier."""

import pytest

from src.models.intent_models import Intent
from src.services.keyword_classifier import classify_by_keywords


class TestKeywordRuleOrder:
    """Each rule in order, first match wins."""

    @pytest.mark.parametrize("message", ["", "   ", None])
    def test_empty_message_is_unknown(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.UNKNOWN
        assert result.confidence == 0.4

    @pytest.mark.parametrize(
        "message",
        [
            "you guys are idiots",
            "what the hell is wrong with you",
            "this is stupid",
            "Hello you moron",
        ],
    )
    def test_abusive_language(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.ABUSIVE
        assert result.confidence == 0.9

    @pytest.mark.parametrize(
        "message", ["Hello", "Hi there", "Good morning", "Namaste", "Hello, kaise ho?"]
    )
    def test_greetings(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.GREETING
        assert result.confidence == 0.85

    @pytest.mark.parametrize(
        "message",
        [
            "Where is my order 1234?",
            "Track my order 1234",
            "mera order 1234 kaha hai?",
            "order 5678 ka status batao",
        ],
    )
    def test_order_keyword_with_number(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.ORDER_STATUS
        assert result.confidence == 0.85

    @pytest.mark.parametrize("message", ["order", "where is my package", "order 123"])
    def test_order_keyword_without_long_number(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.ORDER_STATUS
        assert result.confidence == 0.65

    def test_order_rule_precedes_ticket_rule(self):
        result = classify_by_keywords("I want to file a complaint about my order")

        assert result.intent == Intent.ORDER_STATUS

    @pytest.mark.parametrize(
        "message",
        [
            "Create a support ticket for damaged product",
            "mujhe ticket banana hai for refund",
            "I want to file a complaint",
        ],
    )
    def test_ticket_keywords(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.CREATE_TICKET
        assert result.confidence == 0.75

    @pytest.mark.parametrize(
        "message", ["I want a refund", "Can I cancel this?", "paisa wapas chahiye"]
    )
    def test_refund_keywords(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.REFUND_REQUEST
        assert result.confidence == 0.75

    @pytest.mark.parametrize(
        "message",
        [
            "This is unacceptable service!",
            "I am very disappointed with the quality",
            "bahut bura experience hai",
            "product bilkul kharab hai",
        ],
    )
    def test_complaint_sentiment(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.COMPLAINT
        assert result.confidence == 0.70

    def test_account_keywords(self):
        result = classify_by_keywords("I cannot login with my password")

        assert result.intent == Intent.ACCOUNT_ISSUE
        assert result.confidence == 0.70

    def test_product_keywords(self):
        result = classify_by_keywords("What is the price of this?")

        assert result.intent == Intent.PRODUCT_INQUIRY
        assert result.confidence == 0.65

    @pytest.mark.parametrize(
        "message",
        [
            "What are your business hours?",
            "Do you ship internationally?",
            "international delivery hoti hai kya?",
        ],
    )
    def test_business_info_keywords(self, message):
        result = classify_by_keywords(message)

        assert result.intent == Intent.GENERAL_QUERY
        assert result.confidence == 0.60

    def test_unmatched_is_unknown(self):
        result = classify_by_keywords("asdfgh random text xyz")

        assert result.intent == Intent.UNKNOWN
        assert result.confidence == 0.45

    def test_reasoning_names_the_fallback(self):
        result = classify_by_keywords("Hello")

        assert result.reasoning.startswith("Keyword fallback")

    def test_words_match_on_boundaries(self):
        # "hi" inside "this" is not a greeting
        result = classify_by_keywords("this thing")

        assert result.intent != Intent.GREETING
