"""
Pydantic schemas for agent API.

Defines request/response models for the editing agent API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..domain.entities import Conversation, Message


# =============================================================================
# Constants
# =============================================================================

MAX_MESSAGE_LENGTH = 10000


# =============================================================================
# Chat Schemas
# =============================================================================


class ChatRequest(BaseModel):
    """Request to send a chat message.

    The response is an NDJSON stream of chat events.
    """

    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Resize the clip to 480p",
            }
        }


class CancelResponse(BaseModel):
    """Result of a cancel request."""

    cancelled: bool


# =============================================================================
# Conversation Schemas
# =============================================================================


class ToolCallResponse(BaseModel):
    """A tool call requested by the assistant."""

    id: str
    name: str
    arguments: dict[str, Any]


class ToolResultResponse(BaseModel):
    """The outcome of one tool call."""

    tool_call_id: str
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    latency_ms: Optional[int] = None


class MessageResponse(BaseModel):
    """A message in a conversation."""

    id: UUID
    role: str
    content: str
    tool_calls: Optional[list[ToolCallResponse]] = None
    tool_results: Optional[list[ToolResultResponse]] = None
    error: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_message(cls, message: Message) -> MessageResponse:
        return cls(
            id=message.id,
            role=message.role.value,
            content=message.content,
            tool_calls=[
                ToolCallResponse(id=tc.id, name=tc.name, arguments=tc.arguments)
                for tc in message.tool_calls
            ] if message.tool_calls else None,
            tool_results=[
                ToolResultResponse(
                    tool_call_id=tr.tool_call_id,
                    success=tr.success,
                    content=tr.content,
                    error=tr.error,
                    latency_ms=tr.latency_ms,
                )
                for tr in message.tool_results
            ] if message.tool_results else None,
            error=message.error,
            created_at=message.created_at,
        )


class ConversationResponse(BaseModel):
    """Response for the agent's conversation."""

    id: UUID
    message_count: int
    messages: list[MessageResponse] = []

    class Config:
        json_schema_extra = {
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "message_count": 1,
                "messages": [
                    {
                        "id": "6fa459ea-ee8a-3ca4-894e-db77e160355e",
                        "role": "system",
                        "content": "You are an expert video editing assistant...",
                        "created_at": "2024-01-15T10:30:00Z",
                    }
                ],
            }
        }

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> ConversationResponse:
        return cls(
            id=conversation.id,
            message_count=len(conversation),
            messages=[MessageResponse.from_message(m) for m in conversation.messages],
        )
