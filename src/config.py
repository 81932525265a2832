"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import (
    COMPLETION_TIMEOUT_SECONDS,
    FAILURE_ESCALATION_THRESHOLD,
    MAX_CONCURRENT_SESSIONS,
    ORDER_LOOKUP_FAILURE_RATE,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Completion models (PydanticAI model strings, e.g. via PydanticAI Gateway)
    default_model: str = Field(
        default="gateway/anthropic:claude-3-5-sonnet-latest",
        description="Primary model for intent classification and answer generation",
    )
    fallback_models: list[str] = Field(
        default_factory=lambda: ["gateway/anthropic:claude-3-5-haiku-latest"],
        description="Ordered fallback models tried when the primary is not found",
    )
    completion_timeout_seconds: float = Field(
        default=COMPLETION_TIMEOUT_SECONDS,
        description="Upper bound for a single model call (seconds)",
    )

    # Storage
    storage_backend: Literal["memory", "supabase"] = Field(
        default="memory",
        description="Where agent, tool, FAQ and log records are kept",
    )
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_service_key: str | None = Field(
        default=None, description="Supabase service role key"
    )
    demo_agent_id: str | None = Field(
        default="default-agent",
        description="Agent seeded into the memory backend at startup (None to skip)",
    )

    # Environment
    env: Literal["local", "railway", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO", description="Python logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for AI observability"
    )

    # ==========================================================================
    # Pipeline Guardrails
    # ==========================================================================

    max_concurrent_sessions: int = Field(
        default=MAX_CONCURRENT_SESSIONS,
        ge=1,
        description="Distinct sessions allowed in flight at once",
    )
    failure_escalation_threshold: int = Field(
        default=FAILURE_ESCALATION_THRESHOLD,
        ge=1,
        description="Tool failures per session and intent before forced escalation",
    )
    order_lookup_failure_rate: float = Field(
        default=ORDER_LOOKUP_FAILURE_RATE,
        ge=0.0,
        le=1.0,
        description="Simulated order_lookup outage probability",
    )

    @property
    def model_chain(self) -> list[str]:
        """Primary model followed by the fallbacks, without duplicates."""
        chain: list[str] = []
        for model in [self.default_model, *self.fallback_models]:
            if model and model not in chain:
                chain.append(model)
        return chain


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
