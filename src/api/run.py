"""Pipeline run endpoint.

Request handling, in order:
1. Check required fields against the sanitized message (400); the pipeline
   and conversation log get the message as sent
2. Session admission (429 when a new session arrives at capacity)
3. Orchestration (404 for an unknown agent, 500 for anything unexpected)
4. Conversation logging as a background task after the response is built

Escalations are successful runs: they return 200 with action=escalate.
"""

import logging
import uuid

import logfire
from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse

from src.api.dependencies import AppServices, get_services
from src.db.conversation_log import record_conversation
from src.logging_config import mask_pii
from src.middleware.session_admission import AdmissionDeniedError
from src.models.message_models import ConversationLog, RunRequest, RunResponse
from src.services.input_sanitizer import sanitize_user_input, validate_run_request
from src.services.orchestrator import AgentNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()

TOO_MANY_SESSIONS_ERROR = "Maximum concurrent sessions reached. Please try again."


def new_session_id() -> str:
    """Generate a session id for requests that did not send one."""
    return f"session-{uuid.uuid4().hex}"


@router.post("/run")
async def run_agent(
    payload: RunRequest,
    background_tasks: BackgroundTasks,
    services: AppServices = Depends(get_services),
):
    """Run one customer message through the routing pipeline."""
    message = payload.message or ""
    validation = validate_run_request(payload.agent_id, sanitize_user_input(message))
    if not validation.is_valid:
        logger.warning("Rejected run request: %s", validation.error_code)
        return JSONResponse(
            status_code=400, content={"error": validation.error_message}
        )

    agent_id = payload.agent_id.strip()
    session_id = payload.session_id or new_session_id()

    logfire.info(
        "Run request received",
        agent_id=agent_id,
        session_id=mask_pii(session_id),
        message_length=len(message),
    )

    try:
        with services.admission.admit(session_id):
            response = await services.orchestrator.process_message(
                agent_id, message, session_id
            )
    except AdmissionDeniedError:
        return JSONResponse(status_code=429, content={"error": TOO_MANY_SESSIONS_ERROR})
    except AgentNotFoundError as e:
        return JSONResponse(
            status_code=404,
            content={"error": "Agent not found", "agentId": e.agent_id},
        )
    except Exception as e:
        logger.error("Error processing run request: %s", e, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(e)},
        )

    background_tasks.add_task(
        record_conversation,
        services.conversation_logger,
        ConversationLog(
            agent_id=agent_id,
            session_id=session_id,
            message=message,
            response=response,
        ),
    )

    return RunResponse(
        session_id=session_id, **response.model_dump()
    ).model_dump(mode="json", by_alias=True)
