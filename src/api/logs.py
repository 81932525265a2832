"""Conversation log query endpoint."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.dependencies import AppServices, get_services
from src.constants import MAX_LOG_QUERY_RESULTS
from src.models.message_models import LogQuery

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/logs")
async def get_logs(
    agentId: str | None = None,
    intent: str | None = None,
    action: str | None = None,
    failed: str | None = None,
    services: AppServices = Depends(get_services),
):
    """Most recent conversation logs matching the filters, newest first.

    failed=true keeps only runs whose tool execution failed.
    """
    filters = LogQuery(
        agent_id=agentId,
        intent=intent,
        action=action,
        failed=failed == "true",
    )

    try:
        logs = services.conversation_logger.query(filters, limit=MAX_LOG_QUERY_RESULTS)
    except Exception as e:
        logger.error("Get logs error: %s", e, exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return {
        "success": True,
        "logs": [log.model_dump(mode="json", by_alias=True) for log in logs],
    }
