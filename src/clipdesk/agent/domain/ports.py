"""
Port interfaces (abstract base classes) for the agent module.

These define the contracts that adapters must implement.
Following the Ports & Adapters (Hexagonal) architecture pattern.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional, Sequence

if TYPE_CHECKING:
    from .entities import ChatEvent, Message, ToolDefinition, ToolOutput


# ============================================
# LLM Provider Interface
# ============================================


class ILLMProvider(ABC):
    """Interface for backend completion providers (Claude, GPT, ...).

    Implementations translate the conversation to their wire format and
    re-emit their streaming protocol as normalized ChatEvents.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider discriminator (e.g., 'anthropic')."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier (e.g., 'claude-opus-4-20250514')."""
        pass

    @abstractmethod
    async def chat(
        self,
        messages: Sequence[Message],
        tools: Optional[list[ToolDefinition]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[ChatEvent]:
        """Stream a response to the conversation.

        The first message is the system message. The stream yields
        TEXT_DELTA and TOOL_CALLS events and ends with exactly one
        ERROR or DONE event.

        Args:
            messages: Conversation history, system message first
            tools: Available tools for the model to use
            temperature: Sampling temperature override
            max_tokens: Maximum tokens to generate

        Yields:
            ChatEvent objects representing the streaming response
        """
        pass


# ============================================
# Tool Executor Interface
# ============================================


class IToolExecutor(ABC):
    """Interface for the external tool catalog and its execution engine."""

    @abstractmethod
    async def list_tool_schemas(self) -> list[ToolDefinition]:
        """List the tools this collaborator can execute.

        Returns:
            List of tool definitions
        """
        pass

    @abstractmethod
    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        """Execute a tool.

        Must not raise for unknown tool names or tool failures; those are
        reported through ``ToolOutput.error``.

        Args:
            name: Tool name
            arguments: Resolved tool arguments

        Returns:
            ToolOutput with either content or an error message
        """
        pass
