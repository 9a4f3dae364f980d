"""
Clipdesk Editing Agent Module.

A natural-language agent that drives a catalog of video editing tools
on the user's behalf.

Architecture:
- Domain: Core entities, exceptions and port interfaces
- Providers: LLM provider implementations (Claude, GPT) and the
  streaming tool-call aggregator
- Orchestrator: Turn loop, tool execution and event streaming
- Tools: In-process registry and MCP server client
- Security: Error message sanitization
- API: FastAPI router with NDJSON streaming

Key Features:
- Multi-provider LLM support (Anthropic, OpenAI)
- Tool calls reassembled from streamed argument fragments
- Sequential or concurrent tool execution with per-tool timeouts
- Cancellable requests that always end with a terminal event
"""

# Domain entities
from .domain.entities import (
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
from .domain.exceptions import (
    AgentError,
    ConfigurationError,
    ConversationBusyError,
    InvalidTurnOrder,
    ToolExecutionError,
)

# Orchestrator
from .orchestrator import AgentConfig, AgentOrchestrator, ChatStream

# Tools
from .tools import MCPClient, MCPClientConfig, ToolRegistry

# Providers
from .providers import (
    AnthropicProvider,
    LLMProviderConfig,
    OpenAIProvider,
    create_provider,
)

# Configuration
from .config import AgentSettings

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
    # Orchestrator
    "AgentConfig",
    "AgentOrchestrator",
    "ChatStream",
    # Tools
    "MCPClient",
    "MCPClientConfig",
    "ToolRegistry",
    # Providers
    "AnthropicProvider",
    "LLMProviderConfig",
    "OpenAIProvider",
    "create_provider",
    # Configuration
    "AgentSettings",
]
