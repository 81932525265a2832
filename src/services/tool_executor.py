"""Simulated side-effecting tools.

Two tools are available:

- order_lookup: random 100-300ms delay, fails 20% of the time regardless of
  input, otherwise returns a record from a fixed order table ("Not Found" for
  unknown ids, which is still a successful lookup)
- create_ticket: random 150-400ms delay, fails when the description is
  shorter than 10 characters, otherwise opens a ticket with a unique id

The random source, the order table and the sleep function are injectable so
tests can force either branch without waiting.
"""

import asyncio
import random
import time
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Awaitable, Callable

import logfire

from src.constants import (
    CREATE_TICKET_DELAY_MS,
    MIN_TICKET_DESCRIPTION_CHARS,
    ORDER_LOOKUP_DELAY_MS,
    ORDER_LOOKUP_FAILURE_RATE,
)
from src.models.agent_models import ToolName
from src.models.response_models import ToolExecution

DEFAULT_ORDERS: dict[str, dict[str, Any]] = {
    "1234": {
        "orderId": "1234",
        "status": "In Transit",
        "location": "Mumbai Distribution Center",
        "estimatedDelivery": "2026-02-18",
    },
    "5678": {
        "orderId": "5678",
        "status": "Delivered",
        "location": "Delivered to Customer",
        "deliveryDate": "2026-02-10",
    },
}

SleepFunc = Callable[[float], Awaitable[None]]


class ToolExecutor:
    """Execute named tools against supplied arguments."""

    def __init__(
        self,
        rng: random.Random | None = None,
        orders: dict[str, dict[str, Any]] | None = None,
        order_failure_rate: float = ORDER_LOOKUP_FAILURE_RATE,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the executor.

        Args:
            rng: Random source for delays, failures and ticket ids
            orders: Order table keyed by order id. Defaults to DEFAULT_ORDERS
            order_failure_rate: Probability that order_lookup fails
            sleep: Awaitable sleep used for the simulated delay (seconds)
        """
        self._rng = rng or random.Random()
        self._orders = orders if orders is not None else DEFAULT_ORDERS
        self._order_failure_rate = order_failure_rate
        self._sleep = sleep
        self._ticket_lock = Lock()
        self._last_ticket_millis = 0

    async def execute_tool(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> ToolExecution:
        """Route a call to the named tool.

        Unknown tool names fail immediately with zero latency.
        """
        if tool_name == ToolName.ORDER_LOOKUP.value:
            execution = await self.execute_order_lookup(arguments.get("orderId", ""))
        elif tool_name == ToolName.CREATE_TICKET.value:
            execution = await self.execute_create_ticket(
                arguments.get("category", ""),
                arguments.get("description", ""),
            )
        else:
            execution = ToolExecution(
                tool_name=tool_name,
                arguments=arguments,
                success=False,
                error=f"Unknown tool: {tool_name}",
                latency_ms=0,
            )

        logfire.info(
            "Tool executed",
            tool=tool_name,
            success=execution.success,
            error=execution.error,
            latency_ms=execution.latency_ms,
        )
        return execution

    async def execute_order_lookup(self, order_id: str) -> ToolExecution:
        """Look up an order's status."""
        start_time = time.perf_counter()
        arguments = {"orderId": order_id}

        await self._delay(*ORDER_LOOKUP_DELAY_MS)

        if self._rng.random() < self._order_failure_rate:
            return ToolExecution(
                tool_name=ToolName.ORDER_LOOKUP.value,
                arguments=arguments,
                success=False,
                error="Order lookup service temporarily unavailable",
                latency_ms=_elapsed_ms(start_time),
            )

        order = self._orders.get(order_id)
        if order is None:
            order = {
                "orderId": order_id,
                "status": "Not Found",
                "message": "Order not found in system",
            }

        return ToolExecution(
            tool_name=ToolName.ORDER_LOOKUP.value,
            arguments=arguments,
            success=True,
            result=dict(order),
            latency_ms=_elapsed_ms(start_time),
        )

    async def execute_create_ticket(
        self, category: str, description: str
    ) -> ToolExecution:
        """Open a support ticket."""
        start_time = time.perf_counter()
        arguments = {"category": category, "description": description}

        await self._delay(*CREATE_TICKET_DELAY_MS)

        if len(description or "") < MIN_TICKET_DESCRIPTION_CHARS:
            return ToolExecution(
                tool_name=ToolName.CREATE_TICKET.value,
                arguments=arguments,
                success=False,
                error=(
                    "Description too short. Minimum "
                    f"{MIN_TICKET_DESCRIPTION_CHARS} characters required."
                ),
                latency_ms=_elapsed_ms(start_time),
            )

        return ToolExecution(
            tool_name=ToolName.CREATE_TICKET.value,
            arguments=arguments,
            success=True,
            result={
                "ticketId": self._next_ticket_id(),
                "category": category,
                "description": description,
                "status": "Open",
                "createdAt": datetime.now(timezone.utc).isoformat(),
                "message": "Ticket created successfully",
            },
            latency_ms=_elapsed_ms(start_time),
        )

    def _next_ticket_id(self) -> str:
        # Millisecond part is strictly increasing per executor
        with self._ticket_lock:
            millis = max(int(time.time() * 1000), self._last_ticket_millis + 1)
            self._last_ticket_millis = millis
            suffix = self._rng.randint(0, 999)
        return f"TKT-{millis}-{suffix}"

    async def _delay(self, min_ms: int, max_ms: int) -> None:
        await self._sleep(self._rng.randint(min_ms, max_ms) / 1000)


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


# Global instance
_executor: ToolExecutor | None = None


def get_tool_executor() -> ToolExecutor:
    """Get the global tool executor instance."""
    global _executor
    if _executor is None:
        _executor = ToolExecutor()
    return _executor


def reset_tool_executor() -> None:
    """Reset the global tool executor (primarily for testing)."""
    global _executor
    _executor = None
