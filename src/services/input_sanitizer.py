"""Input validation and sanitization for inbound run requests.

Provides functions for validating the required request fields and
sanitizing the customer message before it enters the pipeline.
"""

import re
import unicodedata
from typing import NamedTuple

import logfire

from src.constants import MAX_MESSAGE_LENGTH_CHARS

MISSING_FIELDS_ERROR = "Missing required fields: agentId, message"


class ValidationResult(NamedTuple):
    """Result of input validation.

    Attributes:
        is_valid: Whether the input passed validation.
        error_code: Error code if validation failed, None otherwise.
        error_message: Human-readable error message if validation failed.
    """

    is_valid: bool
    error_code: str | None
    error_message: str | None


def sanitize_user_input(text: str) -> str:
    """Sanitize a customer message.

    Performs the following sanitization:
    - Removes control characters (except newlines, carriage returns, tabs)
    - Normalizes Unicode to NFC
    - Collapses runs of spaces and tabs, and more than two newlines
    - Strips leading/trailing whitespace
    - Truncates to maximum allowed length

    Args:
        text: The raw message text.

    Returns:
        Sanitized text safe for processing.
    """
    if not text:
        return ""

    sanitized = "".join(char for char in text if ord(char) >= 32 or char in "\n\r\t")
    sanitized = unicodedata.normalize("NFC", sanitized)

    sanitized = re.sub(r"[ \t]+", " ", sanitized)
    sanitized = re.sub(r"\n{3,}", "\n\n", sanitized)

    sanitized = sanitized.strip()

    if len(sanitized) > MAX_MESSAGE_LENGTH_CHARS:
        logfire.warning(
            "Message truncated",
            original_length=len(sanitized),
            max_length=MAX_MESSAGE_LENGTH_CHARS,
        )
        sanitized = sanitized[:MAX_MESSAGE_LENGTH_CHARS]

    return sanitized


def validate_run_request(agent_id: str | None, message: str | None) -> ValidationResult:
    """Check that a run request carries an agent id and a non-blank message.

    Args:
        agent_id: Requested agent id.
        message: Raw customer message.

    Returns:
        ValidationResult with validation status and error details.
    """
    if not agent_id or not agent_id.strip():
        return ValidationResult(
            is_valid=False,
            error_code="missing_agent_id",
            error_message=MISSING_FIELDS_ERROR,
        )

    if message is None or not message.strip():
        return ValidationResult(
            is_valid=False,
            error_code="empty_message",
            error_message=MISSING_FIELDS_ERROR,
        )

    if not re.search(r"\w", message):
        # Symbol-only messages are allowed through; the classifier handles them
        logfire.info(
            "Message contains no word characters",
            text_preview=message.strip()[:50],
        )

    return ValidationResult(is_valid=True, error_code=None, error_message=None)
