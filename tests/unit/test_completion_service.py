"""Tests for the PydanticAI completion service and its error taxonomy."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic_ai.exceptions import ModelHTTPError, UserError

from src.services.completion_service import (
    CompletionError,
    CompletionTimeoutError,
    CompletionUnavailableError,
    ModelNotFoundError,
    PydanticAICompletionService,
)


@pytest.fixture
def mock_agent_class():
    """Patch the PydanticAI Agent used by the completion service."""
    with patch("src.services.completion_service.Agent") as agent_class:
        agent = MagicMock()
        agent.run = AsyncMock(return_value=MagicMock(output="Hello there"))
        agent_class.return_value = agent
        yield agent_class


def service() -> PydanticAICompletionService:
    return PydanticAICompletionService(default_model="test:default", timeout_seconds=5)


class TestComplete:
    """Test successful completions."""

    @pytest.mark.asyncio
    async def test_returns_output(self, mock_agent_class):
        reply = await service().complete("Be brief", "Hi", 0.3)

        assert reply == "Hello there"
        mock_agent_class.assert_called_once_with(
            "test:default", output_type=str, system_prompt="Be brief"
        )

    @pytest.mark.asyncio
    async def test_passes_temperature_and_token_limit(self, mock_agent_class):
        await service().complete("Be brief", "Hi", 0.7, model="test:other")

        assert mock_agent_class.call_args.args[0] == "test:other"
        run = mock_agent_class.return_value.run
        run.assert_awaited_once()
        assert run.call_args.args[0] == "Hi"
        assert run.call_args.kwargs["model_settings"] == {
            "temperature": 0.7,
            "max_tokens": 500,
        }

    @pytest.mark.asyncio
    async def test_empty_output_becomes_empty_string(self, mock_agent_class):
        mock_agent_class.return_value.run.return_value = MagicMock(output=None)

        assert await service().complete("s", "m", 0.3) == ""


class TestErrorTaxonomy:
    """Test translation of provider errors."""

    @pytest.mark.asyncio
    async def test_404_is_model_not_found(self, mock_agent_class):
        mock_agent_class.return_value.run.side_effect = ModelHTTPError(
            status_code=404, model_name="test:default", body=None
        )

        with pytest.raises(ModelNotFoundError) as exc_info:
            await service().complete("s", "m", 0.3)

        assert exc_info.value.model == "test:default"

    @pytest.mark.asyncio
    async def test_model_not_found_body_is_model_not_found(self, mock_agent_class):
        mock_agent_class.return_value.run.side_effect = ModelHTTPError(
            status_code=400,
            model_name="test:default",
            body={"error": {"code": "model_not_found"}},
        )

        with pytest.raises(ModelNotFoundError):
            await service().complete("s", "m", 0.3)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_auth_errors_are_unavailable(self, mock_agent_class, status_code):
        mock_agent_class.return_value.run.side_effect = ModelHTTPError(
            status_code=status_code, model_name="test:default", body=None
        )

        with pytest.raises(CompletionUnavailableError):
            await service().complete("s", "m", 0.3)

    @pytest.mark.asyncio
    async def test_server_error_is_generic(self, mock_agent_class):
        mock_agent_class.return_value.run.side_effect = ModelHTTPError(
            status_code=500, model_name="test:default", body="oops"
        )

        with pytest.raises(CompletionError) as exc_info:
            await service().complete("s", "m", 0.3)

        assert type(exc_info.value) is CompletionError

    @pytest.mark.asyncio
    async def test_configuration_error_is_unavailable(self, mock_agent_class):
        mock_agent_class.side_effect = UserError("Unknown model: nope")

        with pytest.raises(CompletionUnavailableError):
            await service().complete("s", "m", 0.3)

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self, mock_agent_class):
        mock_agent_class.return_value.run.side_effect = httpx.ConnectError("refused")

        with pytest.raises(CompletionUnavailableError):
            await service().complete("s", "m", 0.3)

    @pytest.mark.asyncio
    async def test_timeout(self, mock_agent_class):
        async def never_finishes(*args, **kwargs):
            await asyncio.sleep(10)

        mock_agent_class.return_value.run = never_finishes

        with pytest.raises(CompletionTimeoutError):
            await PydanticAICompletionService(
                default_model="test:default", timeout_seconds=0.01
            ).complete("s", "m", 0.3)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic(self, mock_agent_class):
        mock_agent_class.return_value.run.side_effect = RuntimeError("boom")

        with pytest.raises(CompletionError, match="boom"):
            await service().complete("s", "m", 0.3)

    @pytest.mark.asyncio
    async def test_failures_are_logged(self, mock_agent_class, logfire_capture):
        mock_agent_class.return_value.run.side_effect = RuntimeError("boom")

        with pytest.raises(CompletionError):
            await service().complete("s", "m", 0.3)

        failures = [log for log in logfire_capture if log[1][0] == "Completion call failed"]
        assert failures[0][2]["error_type"] == "RuntimeError"
