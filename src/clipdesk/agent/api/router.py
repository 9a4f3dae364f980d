"""
FastAPI Router for the Editing Agent.

Provides REST endpoints for the agent. Chat responses are streamed as
newline-delimited JSON, one chat event per line.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from ..domain.exceptions import ConversationBusyError
from ..orchestrator import AgentOrchestrator, ChatStream
from ..security.error_sanitizer import sanitize_error_message
from .schemas import CancelResponse, ChatRequest, ConversationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agent", tags=["agent"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


# =============================================================================
# Dependencies
# =============================================================================


class AgentDependencies:
    """Container for agent dependencies.

    Injected at application startup.
    """

    orchestrator: Optional[AgentOrchestrator] = None


_deps = AgentDependencies()


def create_agent_dependencies(orchestrator: Optional[AgentOrchestrator]) -> None:
    """Initialize agent dependencies.

    Call this at application startup (and with None at shutdown).

    Args:
        orchestrator: The agent orchestrator
    """
    _deps.orchestrator = orchestrator


def get_orchestrator() -> AgentOrchestrator:
    """Get the agent orchestrator dependency."""
    if not _deps.orchestrator:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Agent not initialized",
        )
    return _deps.orchestrator


# =============================================================================
# REST Endpoints
# =============================================================================


async def _ndjson_events(stream: ChatStream) -> AsyncIterator[str]:
    """Serialize a chat stream, cancelling it if the client goes away."""
    try:
        async for event in stream:
            yield json.dumps(event.to_dict()) + "\n"
    finally:
        if not stream.closed:
            logger.info("Client disconnected, cancelling chat request")
            stream.cancel()


@router.post("/chat")
async def chat(
    request: ChatRequest,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Send a message and stream the agent's response.

    Each line of the response body is one chat event. The last line is
    always a ``done`` or ``error`` event.
    """
    try:
        stream = await orchestrator.send_message(request.message)
    except ConversationBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=sanitize_error_message(str(e)),
        )

    return StreamingResponse(_ndjson_events(stream), media_type=NDJSON_MEDIA_TYPE)


@router.get("/history", response_model=ConversationResponse)
async def get_history(
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> ConversationResponse:
    """Get the conversation, system message first."""
    conversation = await orchestrator.get_history()
    return ConversationResponse.from_conversation(conversation)


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> None:
    """Clear the conversation, keeping the system message."""
    await orchestrator.clear_history()


@router.post("/cancel", response_model=CancelResponse)
async def cancel(
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> CancelResponse:
    """Cancel the in-flight chat request, if any."""
    return CancelResponse(cancelled=orchestrator.cancel())
