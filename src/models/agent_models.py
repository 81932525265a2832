"""Agent, tool and FAQ configuration models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from src.constants import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    MAX_CONFIDENCE_THRESHOLD,
    MIN_CONFIDENCE_THRESHOLD,
)
from src.models.base import CamelModel


class LanguageMode(str, Enum):
    """Language the agent converses in."""

    ENGLISH = "english"
    HINGLISH = "hinglish"


class SafetyMode(str, Enum):
    """How far the agent may go beyond verified sources."""

    STRICT = "strict"
    BALANCED = "balanced"


class ToolName(str, Enum):
    """Tools the executor knows how to run."""

    ORDER_LOOKUP = "order_lookup"
    CREATE_TICKET = "create_ticket"


class AgentConfig(CamelModel):
    """Per-agent configuration, read-only to the pipeline."""

    agent_id: str
    name: str = ""
    persona: str = "You are a helpful customer support assistant."
    language_mode: LanguageMode = LanguageMode.ENGLISH
    safety_mode: SafetyMode = SafetyMode.BALANCED
    confidence_threshold: float = Field(
        default=DEFAULT_CONFIDENCE_THRESHOLD,
        ge=MIN_CONFIDENCE_THRESHOLD,
        le=MAX_CONFIDENCE_THRESHOLD,
        description="Minimum classifier confidence for autonomous action",
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ToolParameter(BaseModel):
    """One named, typed argument of a tool."""

    name: str
    type: str = "string"
    required: bool = True
    description: str = ""


class ToolConfig(CamelModel):
    """Per-agent, per-tool configuration record."""

    agent_id: str
    name: ToolName
    enabled: bool = True
    description: str = ""
    parameters: list[ToolParameter] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FAQ(CamelModel):
    """Question/answer pair owned by an agent."""

    agent_id: str
    question: str
    answer: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
