"""Intent classification models."""

from enum import Enum

from pydantic import Field

from src.models.base import CamelModel


class Intent(str, Enum):
    """Closed set of customer intents the pipeline understands."""

    ORDER_STATUS = "order_status"
    CREATE_TICKET = "create_ticket"
    GENERAL_QUERY = "general_query"
    GREETING = "greeting"
    COMPLAINT = "complaint"
    REFUND_REQUEST = "refund_request"
    PRODUCT_INQUIRY = "product_inquiry"
    ACCOUNT_ISSUE = "account_issue"
    FEEDBACK = "feedback"
    ABUSIVE = "abusive"
    UNKNOWN = "unknown"


class IntentClassification(CamelModel):
    """Intent label produced once per request."""

    intent: Intent
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str | None = None
