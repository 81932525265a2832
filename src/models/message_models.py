"""Inbound request, outbound response and conversation log models."""

from datetime import datetime, timezone

from pydantic import Field

from src.models.base import CamelModel
from src.models.response_models import AgentResponse


class RunRequest(CamelModel):
    """Body of POST /run.

    Required fields are checked by the handler so that a missing field gets
    the same 400 response as an empty one.
    """

    agent_id: str | None = Field(default=None, description="Agent to run")
    message: str | None = Field(default=None, description="Customer message")
    session_id: str | None = Field(
        default=None, description="Conversation id (generated when absent)"
    )


class RunResponse(AgentResponse):
    """AgentResponse plus the echoed session id."""

    success: bool = True
    session_id: str


class ConversationLog(CamelModel):
    """One finished pipeline run, as handed to the logging collaborator."""

    agent_id: str
    session_id: str
    message: str
    response: AgentResponse
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LogQuery(CamelModel):
    """Filters accepted by the conversation log query."""

    agent_id: str | None = None
    intent: str | None = None
    action: str | None = None
    failed: bool = False
