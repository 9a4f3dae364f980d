"""Agent Orchestrator.

The orchestrator coordinates all components of the editing agent:
- LLM provider for response generation
- Tool collaborator for tool discovery and execution
- Conversation state shared across turns
- Streaming events for real-time UI updates
"""

from .agent import AgentConfig, AgentOrchestrator, DEFAULT_SYSTEM_PROMPT
from .chat_stream import ChatStream
from .event_streamer import EventStreamer
from .tool_executor import ToolExecutor

__all__ = [
    # Main orchestrator
    "AgentOrchestrator",
    "AgentConfig",
    "DEFAULT_SYSTEM_PROMPT",
    # Collaborators
    "ChatStream",
    "EventStreamer",
    "ToolExecutor",
]
