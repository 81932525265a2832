"""Tests for the hallucination guard."""

import json

import pytest

from src.models.agent_models import SafetyMode
from src.models.intent_models import Intent
from src.services.hallucination_guard import (
    HallucinationGuard,
    contains_abusive_content,
    get_hallucination_guard,
    reset_hallucination_guard,
)

ORDER_RESULT = {
    "orderId": "1234",
    "status": "In Transit",
    "location": "Mumbai Distribution Center",
    "estimatedDelivery": "2026-02-18",
}


@pytest.fixture
def guard():
    return HallucinationGuard()


class TestCheckAnswer:
    """Test answer validation against source context."""

    def test_strict_mode_without_context_is_unsafe(self, guard):
        result = guard.check_answer("We can help.", "", Intent.GREETING, SafetyMode.STRICT)

        assert result.safe is False
        assert result.reason == "Strict mode: No source context available"

    def test_balanced_mode_without_context_may_be_safe(self, guard):
        result = guard.check_answer("We can help.", "", Intent.GREETING, SafetyMode.BALANCED)

        assert result.safe is True

    @pytest.mark.parametrize(
        "phrase",
        [
            "According to our records",
            "Our policy states",
            "We have found",
            "The data shows",
        ],
    )
    def test_strict_mode_rejects_authority_claims(self, guard, phrase):
        result = guard.check_answer(
            f"{phrase} that it is fine.",
            "some unrelated source",
            Intent.GENERAL_QUERY,
            SafetyMode.STRICT,
        )

        assert result.safe is False
        assert result.reason == "Strict mode: Answer contains claims not in source"

    def test_strict_mode_allows_authority_claim_present_in_source(self, guard):
        result = guard.check_answer(
            "Our policy states returns are free.",
            "Our policy states returns are free.",
            Intent.GENERAL_QUERY,
            SafetyMode.STRICT,
        )

        assert result.safe is True

    def test_balanced_mode_ignores_authority_claims(self, guard):
        result = guard.check_answer(
            "According to our records it is fine.",
            "some source",
            Intent.GENERAL_QUERY,
            SafetyMode.BALANCED,
        )

        assert result.safe is True

    @pytest.mark.parametrize("mode", [SafetyMode.STRICT, SafetyMode.BALANCED])
    def test_numbers_absent_from_source_are_unsafe(self, guard, mode):
        result = guard.check_answer(
            "It will arrive in 5 days.",
            json.dumps(ORDER_RESULT),
            Intent.GENERAL_QUERY,
            mode,
        )

        assert result.safe is False
        assert result.reason == 'Numeric claim "5" not found in source'

    def test_numbers_present_in_source_are_safe(self, guard):
        result = guard.check_answer(
            "Order 1234 arrives 2026-02-18.",
            json.dumps(ORDER_RESULT),
            Intent.ORDER_STATUS,
            SafetyMode.BALANCED,
        )

        assert result.safe is True

    def test_order_vocabulary_without_tool_data_is_unsafe(self, guard):
        result = guard.check_answer(
            "Your order is in transit.",
            '{"message": "nothing here"}',
            Intent.ORDER_STATUS,
            SafetyMode.BALANCED,
        )

        assert result.safe is False
        assert result.reason == "Order status claims without tool data"

    def test_ticket_vocabulary_without_tool_data_is_unsafe(self, guard):
        result = guard.check_answer(
            "A ticket was opened for you.",
            '{"message": "nothing here"}',
            Intent.CREATE_TICKET,
            SafetyMode.BALANCED,
        )

        assert result.safe is False
        assert result.reason == "Ticket creation claims without tool data"

    def test_topic_vocabulary_only_checked_for_tool_intents(self, guard):
        result = guard.check_answer(
            "Your order is on its way.",
            "General knowledge and reasoning",
            Intent.GENERAL_QUERY,
            SafetyMode.BALANCED,
        )

        assert result.safe is True

    def test_abusive_answer_is_unsafe(self, guard):
        result = guard.check_answer(
            "That is a stupid question.",
            "some source",
            Intent.GENERAL_QUERY,
            SafetyMode.BALANCED,
        )

        assert result.safe is False
        assert result.reason == "Answer contains inappropriate content"


class TestValidateSourceCitation:
    """Test citation phrasing detection."""

    @pytest.mark.parametrize(
        "answer",
        [
            "Based on FAQ, we open at 9.",
            "According to the tool, it shipped.",
            "From documentation: yes.",
            "The tool shows it shipped.",
            "It shipped.\n\nSource: Tool",
            "Sure.\n\nSource: General reasoning",
        ],
    )
    def test_cited_answers(self, guard, answer):
        assert guard.validate_source_citation(answer, SafetyMode.BALANCED) is True

    def test_uncited_balanced_answer(self, guard):
        assert guard.validate_source_citation("It shipped.", SafetyMode.BALANCED) is False

    def test_strict_mode_is_exempt(self, guard):
        assert guard.validate_source_citation("It shipped.", SafetyMode.STRICT) is True


class TestTemplatedResponse:
    """Test fixed-format answers built from tool results."""

    def test_order_status_without_estimated_delivery(self, guard):
        result = {
            "orderId": "1234",
            "status": "In Transit",
            "location": "Mumbai Distribution Center",
        }

        answer = guard.get_templated_response(Intent.ORDER_STATUS, result)

        assert answer == (
            "Your order 1234 is currently In Transit. "
            "Location: Mumbai Distribution Center. "
        )

    def test_order_status_with_all_fields(self, guard):
        answer = guard.get_templated_response(Intent.ORDER_STATUS, ORDER_RESULT)

        assert answer == (
            "Your order 1234 is currently In Transit. "
            "Location: Mumbai Distribution Center. "
            "Estimated delivery: 2026-02-18."
        )

    def test_order_not_found(self, guard):
        answer = guard.get_templated_response(
            Intent.ORDER_STATUS, {"orderId": "9999", "status": "Not Found"}
        )

        assert answer == "Your order 9999 is currently Not Found.  "

    def test_create_ticket(self, guard):
        answer = guard.get_templated_response(
            Intent.CREATE_TICKET, {"ticketId": "TKT-1-2", "status": "Open"}
        )

        assert answer == (
            "Your support ticket TKT-1-2 has been created successfully. "
            "Our team will review it shortly."
        )

    def test_abusive_apology(self, guard):
        answer = guard.get_templated_response(Intent.ABUSIVE, None)

        assert "human agent" in answer

    @pytest.mark.parametrize(
        "intent", [Intent.GREETING, Intent.GENERAL_QUERY, Intent.REFUND_REQUEST]
    )
    def test_other_intents_have_no_template(self, guard, intent):
        assert guard.get_templated_response(intent, ORDER_RESULT) is None

    def test_missing_fields_force_generation(self, guard):
        assert guard.get_templated_response(Intent.ORDER_STATUS, {"orderId": "1"}) is None
        assert guard.get_templated_response(Intent.CREATE_TICKET, {}) is None


class TestAbusiveContent:
    """Test module-level abusive-content detection."""

    @pytest.mark.parametrize(
        "text", ["you guys are idiots", "WHAT THE HELL", "damn it", "such a moron"]
    )
    def test_detects_abuse(self, text):
        assert contains_abusive_content(text) is True

    @pytest.mark.parametrize("text", ["", "hello there", "Hellooo", "scunthorpe dumbbell"])
    def test_clean_text(self, text):
        assert contains_abusive_content(text) is False


class TestGuardFactory:
    """Test the global guard instance."""

    def test_singleton_and_reset(self):
        reset_hallucination_guard()
        first = get_hallucination_guard()

        assert get_hallucination_guard() is first

        reset_hallucination_guard()
        assert get_hallucination_guard() is not first
