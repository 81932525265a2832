"""Completion service backed by PydanticAI.

Wraps a single "system prompt + user message -> text" call and translates
provider failures into a small error taxonomy the callers can route on:

- ModelNotFoundError: this model id does not exist, try the next one
- CompletionUnavailableError: the service itself is unusable (unreachable,
  unauthenticated, misconfigured), trying other models is pointless
- CompletionTimeoutError: the bounded wait expired
- CompletionError: anything else
"""

import asyncio
import time
from typing import Protocol

import httpx
import logfire
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UserError

from src.config import get_settings
from src.constants import COMPLETION_MAX_TOKENS


class CompletionError(Exception):
    """Base exception for completion failures."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class ModelNotFoundError(CompletionError):
    """Raised when the remote service does not know the requested model."""

    pass


class CompletionUnavailableError(CompletionError):
    """Raised when the remote service cannot be used at all."""

    pass


class CompletionTimeoutError(CompletionError):
    """Raised when a completion exceeds its time budget."""

    pass


class CompletionService(Protocol):
    """Protocol for text completion backends.

    Used by intent classification and answer generation. Implementations
    must raise CompletionError subclasses rather than provider exceptions.
    """

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        *,
        model: str | None = None,
    ) -> str:
        """Return the model's reply to user_message under system_prompt."""
        ...


class PydanticAICompletionService:
    """CompletionService implementation using PydanticAI agents.

    A fresh Agent is built per call because the system prompt varies per
    request (language mode, persona, source context).

    Example:
        >>> service = PydanticAICompletionService()
        >>> await service.complete("Reply in JSON", "Where is order 1234?", 0.3)
        '{"intent": "order_status", "confidence": 0.9}'
    """

    def __init__(
        self,
        default_model: str | None = None,
        timeout_seconds: float | None = None,
    ):
        """Initialize the completion service.

        Args:
            default_model: Model used when complete() is not given one.
                           Defaults to settings.default_model
            timeout_seconds: Upper bound per call.
                             Defaults to settings.completion_timeout_seconds
        """
        settings = get_settings()
        self.default_model = default_model or settings.default_model
        self.timeout_seconds = timeout_seconds or settings.completion_timeout_seconds

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        *,
        model: str | None = None,
    ) -> str:
        """Run one completion.

        Args:
            system_prompt: Instructions for the model
            user_message: Customer text
            temperature: Sampling temperature
            model: Model id, defaults to the service's default model

        Returns:
            Reply text (may be empty)

        Raises:
            CompletionError: or one of its subclasses
        """
        model_name = model or self.default_model
        start_time = time.time()

        try:
            agent = Agent(
                model_name,
                output_type=str,
                system_prompt=system_prompt,
            )
            result = await asyncio.wait_for(
                agent.run(
                    user_message,
                    model_settings={
                        "temperature": temperature,
                        "max_tokens": COMPLETION_MAX_TOKENS,
                    },
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            self._log_failure(model_name, e, start_time)
            raise CompletionTimeoutError(
                f"Completion timed out after {self.timeout_seconds}s", model=model_name
            ) from e
        except ModelHTTPError as e:
            self._log_failure(model_name, e, start_time)
            raise self._classify_http_error(e, model_name) from e
        except UserError as e:
            self._log_failure(model_name, e, start_time)
            raise CompletionUnavailableError(
                f"Model configuration error: {e}", model=model_name
            ) from e
        except httpx.TransportError as e:
            self._log_failure(model_name, e, start_time)
            raise CompletionUnavailableError(
                f"Completion service unreachable: {e}", model=model_name
            ) from e
        except Exception as e:
            self._log_failure(model_name, e, start_time)
            raise CompletionError(
                f"Completion failed: {e}", model=model_name
            ) from e

        output = result.output or ""
        logfire.info(
            "Completion finished",
            model=model_name,
            temperature=temperature,
            response_time_ms=(time.time() - start_time) * 1000,
            response_length=len(output),
        )
        return output

    @staticmethod
    def _classify_http_error(error: ModelHTTPError, model_name: str) -> CompletionError:
        body = str(error.body or "").lower()
        if error.status_code == 404 or "model_not_found" in body:
            return ModelNotFoundError(
                f"Model not found: {model_name}", model=model_name
            )
        if error.status_code in (401, 403):
            return CompletionUnavailableError(
                f"Completion service rejected credentials ({error.status_code})",
                model=model_name,
            )
        return CompletionError(
            f"Completion service error ({error.status_code})", model=model_name
        )

    @staticmethod
    def _log_failure(model_name: str, error: BaseException, start_time: float) -> None:
        logfire.warning(
            "Completion call failed",
            model=model_name,
            error=str(error),
            error_type=type(error).__name__,
            response_time_ms=(time.time() - start_time) * 1000,
        )


# Factory function for dependency injection
def get_completion_service() -> PydanticAICompletionService:
    """Get completion service instance."""
    return PydanticAICompletionService()
