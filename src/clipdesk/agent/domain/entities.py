"""
Domain entities for the editing agent.

These are pure domain objects with no infrastructure dependencies.
They define the conversation model shared by every backend provider,
the orchestrator, and the hosting surfaces.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterator, Optional

from .exceptions import InvalidTurnOrder

# ============================================
# Message Types
# ============================================


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def _new_tool_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:24]}"


@dataclass
class ToolCall:
    """A fully-resolved tool call requested by the LLM.

    Attributes:
        name: Tool name being called
        arguments: Parsed arguments (never a partial fragment)
        id: Backend-assigned identifier, used to correlate results
    """

    name: str
    arguments: dict[str, Any]
    id: str = field(default_factory=_new_tool_call_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass
class ToolResult:
    """Result from executing one tool call.

    Exactly one of ``content`` and ``error`` is populated: ``content``
    when ``success`` is True, ``error`` otherwise.

    Attributes:
        tool_call_id: ID of the tool call this is a result for
        success: Whether execution succeeded
        content: Result payload (if successful)
        error: Human-readable failure description (if failed)
        latency_ms: Execution time in milliseconds
    """

    tool_call_id: str
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    latency_ms: Optional[int] = None

    def __post_init__(self):
        if self.success:
            if self.error is not None:
                raise ValueError("successful tool result cannot carry an error")
            if self.content is None:
                self.content = ""
        else:
            if not self.error:
                raise ValueError("failed tool result requires an error message")
            if self.content is not None:
                raise ValueError("failed tool result cannot carry content")

    @classmethod
    def ok(
        cls, tool_call_id: str, content: str, latency_ms: Optional[int] = None
    ) -> ToolResult:
        """Create a successful result."""
        return cls(
            tool_call_id=tool_call_id,
            success=True,
            content=content,
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(
        cls, tool_call_id: str, error: str, latency_ms: Optional[int] = None
    ) -> ToolResult:
        """Create a failed result."""
        return cls(
            tool_call_id=tool_call_id,
            success=False,
            error=error,
            latency_ms=latency_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "tool_call_id": self.tool_call_id,
            "success": self.success,
        }
        if self.success:
            result["content"] = self.content
        else:
            result["error"] = self.error
        if self.latency_ms is not None:
            result["latency_ms"] = self.latency_ms
        return result


@dataclass
class ToolOutput:
    """Raw outcome returned by a tool collaborator's ``execute``."""

    content: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Message:
    """A single turn in a conversation.

    Attributes:
        role: Message role (system, user, assistant)
        content: Message text (possibly empty)
        tool_calls: Tool calls requested on an assistant turn
        tool_results: Outcomes of a prior assistant turn's tool calls
        error: Set when the turn failed part-way; the message then holds
            whatever partial output was received
        id: Unique message identifier
        created_at: Creation timestamp
    """

    role: MessageRole
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    error: Optional[str] = None
    id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.id is None:
            self.id = uuid.uuid4()
        if self.created_at is None:
            self.created_at = datetime.utcnow()

    @property
    def failed(self) -> bool:
        """True if this turn was cut short by an error."""
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": str(self.id),
            "role": self.role.value,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }
        if self.tool_calls:
            result["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_results:
            result["tool_results"] = [tr.to_dict() for tr in self.tool_results]
        if self.error is not None:
            result["error"] = self.error
        return result


# ============================================
# Conversation
# ============================================


class Conversation:
    """An ordered, append-only sequence of messages.

    Always starts with exactly one system message. Tracks which tool
    calls are still waiting for a result so that every tool result can
    be correlated with exactly one earlier call.

    Usage:
        conversation = Conversation("You are a video editing assistant.")
        conversation.append(Message(role=MessageRole.USER, content="Hi"))

        history = conversation.snapshot()
        conversation.reset()
    """

    def __init__(self, system_prompt: str):
        self.id = uuid.uuid4()
        self._messages: list[Message] = [
            Message(role=MessageRole.SYSTEM, content=system_prompt)
        ]
        self._pending: dict[str, ToolCall] = {}
        self._seen_tool_call_ids: set[str] = set()

    @property
    def messages(self) -> tuple[Message, ...]:
        """All messages, system message first."""
        return tuple(self._messages)

    @property
    def system_message(self) -> Message:
        return self._messages[0]

    @property
    def pending_tool_call_ids(self) -> list[str]:
        """IDs of tool calls that have not received a result yet."""
        return list(self._pending)

    def append(self, message: Message) -> None:
        """Append a message, enforcing turn-ordering invariants.

        Raises:
            InvalidTurnOrder: If the message would break the conversation
                invariants (second system message, unknown or already
                resolved tool_call_id, duplicate tool call id).
        """
        if message.role == MessageRole.SYSTEM:
            raise InvalidTurnOrder(
                "A conversation has exactly one system message, at index 0"
            )
        if message.tool_calls and message.tool_results:
            raise InvalidTurnOrder(
                "Tool calls and tool results cannot share a message"
            )

        if message.tool_calls:
            if message.role != MessageRole.ASSISTANT:
                raise InvalidTurnOrder("Only assistant turns may request tools")
            turn_ids: set[str] = set()
            for tc in message.tool_calls:
                if tc.id in turn_ids or tc.id in self._seen_tool_call_ids:
                    raise InvalidTurnOrder(
                        f"Duplicate tool call id: {tc.id}",
                        details={"tool_call_id": tc.id},
                    )
                turn_ids.add(tc.id)

        if message.tool_results:
            resolved: set[str] = set()
            for tr in message.tool_results:
                if tr.tool_call_id not in self._pending or tr.tool_call_id in resolved:
                    raise InvalidTurnOrder(
                        f"Tool result references unknown tool call: {tr.tool_call_id}",
                        details={"tool_call_id": tr.tool_call_id},
                    )
                resolved.add(tr.tool_call_id)

        self._messages.append(message)

        for tc in message.tool_calls:
            self._seen_tool_call_ids.add(tc.id)
            # Calls on a failed turn are kept for display but never resolved
            if not message.failed:
                self._pending[tc.id] = tc
        for tr in message.tool_results:
            del self._pending[tr.tool_call_id]

    def reset(self) -> None:
        """Truncate to the system message."""
        del self._messages[1:]
        self._pending.clear()
        self._seen_tool_call_ids.clear()

    def snapshot(self) -> Conversation:
        """Return an independent copy safe to hand to readers."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "messages": [m.to_dict() for m in self._messages],
        }

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)


# ============================================
# Tool System
# ============================================


@dataclass
class ToolDefinition:
    """Definition of an available tool.

    Attributes:
        name: Tool name (e.g., 'resize_video')
        description: Human-readable description
        parameters: JSON Schema for parameters
        timeout_seconds: Maximum execution time (None = executor default)
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)
    timeout_seconds: Optional[float] = None

    def _input_schema(self) -> dict[str, Any]:
        schema = dict(self.parameters)
        schema.setdefault("type", "object")
        if schema["type"] == "object":
            schema.setdefault("properties", {})
        return schema

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self._input_schema(),
            },
        }

    def to_anthropic_format(self) -> dict[str, Any]:
        """Convert to Anthropic tool use format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self._input_schema(),
        }


# ============================================
# Streaming Events
# ============================================


class ChatEventType(str, Enum):
    """Types of streaming chat events."""

    TEXT_DELTA = "text_delta"  # Partial text, forwarded as it arrives
    TOOL_CALLS = "tool_calls"  # Completed tool calls (provider -> orchestrator)
    TOOL_RESULTS = "tool_results"  # Calls plus their results (orchestrator -> caller)
    ERROR = "error"  # Terminal failure
    DONE = "done"  # Terminal success / turn complete


class ErrorType(str, Enum):
    """Types of errors in streaming."""

    RECOVERABLE = "recoverable"  # Can retry
    FATAL = "fatal"  # Must abort
    TIMEOUT = "timeout"  # LLM timeout
    RATE_LIMIT = "rate_limit"  # Rate limited, back off
    CANCELLED = "cancelled"  # Caller cancelled the request
    TURN_LIMIT = "turn_limit"  # max_turns reached without a final answer


TERMINAL_EVENT_TYPES = frozenset({ChatEventType.ERROR, ChatEventType.DONE})


@dataclass
class ChatEvent:
    """A streaming chat event.

    Attributes:
        type: Event type
        sequence: Sequence number for ordering
        content: Text content (for TEXT_DELTA)
        tool_calls: Completed tool calls (for TOOL_CALLS, TOOL_RESULTS)
        tool_results: Tool results (for TOOL_RESULTS)
        error: Error message (for ERROR)
        error_type: Type of error
        metadata: Additional event metadata
        correlation_id: Request correlation ID for tracing
        event_id: Unique event ID for idempotency
    """

    type: ChatEventType
    sequence: int
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_results: Optional[list[ToolResult]] = None
    error: Optional[str] = None
    error_type: Optional[ErrorType] = None
    metadata: Optional[dict[str, Any]] = None
    correlation_id: Optional[str] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "type": self.type.value,
            "sequence": self.sequence,
            "event_id": self.event_id,
        }
        if self.content is not None:
            result["content"] = self.content
        if self.tool_calls is not None:
            result["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_results is not None:
            result["tool_results"] = [tr.to_dict() for tr in self.tool_results]
        if self.error is not None:
            result["error"] = self.error
        if self.error_type is not None:
            result["error_type"] = self.error_type.value
        if self.metadata is not None:
            result["metadata"] = self.metadata
        if self.correlation_id is not None:
            result["correlation_id"] = self.correlation_id
        return result

    @classmethod
    def text_delta(cls, text: str, sequence: int) -> ChatEvent:
        """Create a text delta event."""
        return cls(type=ChatEventType.TEXT_DELTA, sequence=sequence, content=text)

    @classmethod
    def tool_calls_completed(
        cls, tool_calls: list[ToolCall], sequence: int
    ) -> ChatEvent:
        """Create a completed-tool-calls event."""
        return cls(
            type=ChatEventType.TOOL_CALLS,
            sequence=sequence,
            tool_calls=list(tool_calls),
        )

    @classmethod
    def error_event(
        cls, message: str, error_type: ErrorType, sequence: int
    ) -> ChatEvent:
        """Create an error event."""
        return cls(
            type=ChatEventType.ERROR,
            sequence=sequence,
            error=message,
            error_type=error_type,
        )

    @classmethod
    def done(cls, sequence: int, metadata: Optional[dict[str, Any]] = None) -> ChatEvent:
        """Create a done event."""
        return cls(type=ChatEventType.DONE, sequence=sequence, metadata=metadata)
