"""Domain entities and port interfaces for the agent module."""

from .entities import (
    ChatEvent,
    ChatEventType,
    Conversation,
    ErrorType,
    Message,
    MessageRole,
    ToolCall,
    ToolDefinition,
    ToolOutput,
    ToolResult,
)
from .exceptions import (
    AgentError,
    ConfigurationError,
    ConversationBusyError,
    InvalidTurnOrder,
    ToolExecutionError,
)
from .ports import ILLMProvider, IToolExecutor

__all__ = [
    # Entities
    "ChatEvent",
    "ChatEventType",
    "Conversation",
    "ErrorType",
    "Message",
    "MessageRole",
    "ToolCall",
    "ToolDefinition",
    "ToolOutput",
    "ToolResult",
    # Exceptions
    "AgentError",
    "ConfigurationError",
    "ConversationBusyError",
    "InvalidTurnOrder",
    "ToolExecutionError",
    # Ports
    "ILLMProvider",
    "IToolExecutor",
]
