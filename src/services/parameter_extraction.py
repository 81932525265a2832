"""Structured tool arguments extracted from free-text messages."""

import re
from typing import Any, NamedTuple

from src.constants import DEFAULT_TICKET_CATEGORY
from src.models.agent_models import ToolName
from src.models.intent_models import Intent

ORDER_ID_PATTERN = re.compile(r"\b(\d{4,})\b")


class ToolParameters(NamedTuple):
    """Result of parameter extraction.

    Attributes:
        valid: Whether a tool call can be made.
        tool_name: Tool to call when valid.
        arguments: Tool arguments when valid.
        reason: User-facing reason when not valid.
    """

    valid: bool
    tool_name: ToolName | None = None
    arguments: dict[str, Any] | None = None
    reason: str | None = None


def extract_tool_parameters(intent: Intent, message: str) -> ToolParameters:
    """Extract tool arguments for a tool-backed intent.

    Args:
        intent: Classified intent.
        message: Raw customer message.

    Returns:
        ToolParameters describing the call, or why it cannot be made.
    """
    if intent == Intent.ORDER_STATUS:
        match = ORDER_ID_PATTERN.search(message or "")
        if not match:
            return ToolParameters(
                valid=False, reason="Please provide your order number."
            )
        return ToolParameters(
            valid=True,
            tool_name=ToolName.ORDER_LOOKUP,
            arguments={"orderId": match.group(1)},
        )

    if intent == Intent.CREATE_TICKET:
        # Ticket quality is checked by the tool itself
        return ToolParameters(
            valid=True,
            tool_name=ToolName.CREATE_TICKET,
            arguments={
                "category": DEFAULT_TICKET_CATEGORY,
                "description": message or "",
            },
        )

    return ToolParameters(valid=False, reason="Unknown tool for intent")
