"""Tests for timed table operations."""

from unittest.mock import patch

import pytest

from src.db.query_executor import timed_query


def test_success_logs_debug():
    with patch("src.db.query_executor.logfire") as mock_logfire:
        with timed_query("get_agent", "agents", agent_id="a"):
            pass

    mock_logfire.debug.assert_called_once()
    kwargs = mock_logfire.debug.call_args.kwargs
    assert kwargs["table"] == "agents"
    assert kwargs["agent_id"] == "a"
    mock_logfire.error.assert_not_called()


def test_failure_logs_error_and_reraises():
    with patch("src.db.query_executor.logfire") as mock_logfire:
        with pytest.raises(RuntimeError, match="timeout"):
            with timed_query("get_faqs", "faqs"):
                raise RuntimeError("timeout")

    mock_logfire.error.assert_called_once()
    assert mock_logfire.error.call_args.args[0] == "get_faqs failed"
    assert mock_logfire.error.call_args.kwargs["error_type"] == "RuntimeError"
    mock_logfire.debug.assert_not_called()
