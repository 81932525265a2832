"""Timing and logging for Supabase table operations."""

import time
from contextlib import contextmanager
from typing import Any, Generator

import logfire


@contextmanager
def timed_query(
    operation_name: str,
    table: str,
    **log_context: Any,
) -> Generator[None, None, None]:
    """
    Time a table operation and log its outcome.

    Successful operations are logged at debug level; failures are logged as
    errors with elapsed time and re-raised.

    Args:
        operation_name: Repository operation (e.g., "get_agent")
        table: Table being queried
        **log_context: Extra attributes for the log records

    Example:
        with timed_query("get_agent", "agents", agent_id=agent_id):
            result = client.table("agents").select("*").eq("agent_id", agent_id).execute()
    """
    start_time = time.time()

    try:
        yield
    except Exception as e:
        logfire.error(
            f"{operation_name} failed",
            operation=operation_name,
            table=table,
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=(time.time() - start_time) * 1000,
            **log_context,
        )
        raise

    logfire.debug(
        f"{operation_name} completed",
        operation=operation_name,
        table=table,
        response_time_ms=(time.time() - start_time) * 1000,
        **log_context,
    )
