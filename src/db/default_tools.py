"""Default tool configurations created on an agent's first tool lookup."""

from datetime import datetime, timezone

from src.models.agent_models import ToolConfig, ToolName, ToolParameter


def create_default_tool_configs(agent_id: str) -> list[ToolConfig]:
    """Build the order_lookup and create_ticket defaults for an agent."""
    now = datetime.now(timezone.utc)

    return [
        ToolConfig(
            agent_id=agent_id,
            name=ToolName.ORDER_LOOKUP,
            enabled=True,
            description="Look up order status and location by order ID",
            parameters=[
                ToolParameter(
                    name="orderId",
                    type="string",
                    required=True,
                    description="Order number to lookup (e.g., 1234)",
                ),
            ],
            created_at=now,
            updated_at=now,
        ),
        ToolConfig(
            agent_id=agent_id,
            name=ToolName.CREATE_TICKET,
            enabled=True,
            description="Create a customer support ticket",
            parameters=[
                ToolParameter(
                    name="category",
                    type="string",
                    required=True,
                    description="Ticket category (e.g., refund, account, product)",
                ),
                ToolParameter(
                    name="description",
                    type="string",
                    required=True,
                    description="Issue description (min 10 characters)",
                ),
            ],
            created_at=now,
            updated_at=now,
        ),
    ]
