"""
Base LLM Provider Implementation.

Provides common functionality for all LLM providers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional, Sequence

from ..domain.entities import (
    ChatEvent,
    ErrorType,
    Message,
    ToolCall,
    ToolDefinition,
)
from ..domain.exceptions import ConfigurationError
from ..domain.ports import ILLMProvider
from .aggregator import ToolCallAggregator

logger = logging.getLogger(__name__)


@dataclass
class LLMProviderConfig:
    """Configuration for LLM providers.

    Attributes:
        api_key: API key for the provider
        model: Model name to use
        base_url: Optional custom base URL
        timeout: Request timeout in seconds
        max_retries: Maximum retry attempts (handled by the SDK client)
        temperature: Default temperature (None = provider default)
        max_tokens: Default max tokens (None = provider default)
    """

    api_key: str
    model: str
    base_url: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = 3
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict)


class BaseLLMProvider(ILLMProvider, ABC):
    """Base class for LLM provider implementations.

    Provides event construction with per-stream sequence numbers and
    the shared failure path. Subclasses implement the wire translation
    and stream demultiplexing for one backend.
    """

    #: Discriminator used by the provider factory
    PROVIDER_NAME: str = ""

    def __init__(self, config: LLMProviderConfig):
        """Initialize the provider.

        Args:
            config: Provider configuration

        Raises:
            ConfigurationError: If no API key is configured
        """
        if not config.api_key:
            raise ConfigurationError(
                f"{self.PROVIDER_NAME or 'LLM'} API key is required",
                details={"provider": self.PROVIDER_NAME},
            )
        self.config = config
        self._sequence_counter = 0

    @property
    def provider_name(self) -> str:
        return self.PROVIDER_NAME

    @property
    def model_name(self) -> str:
        """Return the model name."""
        return self.config.model

    def _next_sequence(self) -> int:
        """Get the next sequence number for events."""
        self._sequence_counter += 1
        return self._sequence_counter

    def _reset_sequence(self) -> None:
        """Reset the sequence counter (call at start of new chat)."""
        self._sequence_counter = 0

    def _create_text_delta(self, text: str) -> ChatEvent:
        """Create a text delta event."""
        return ChatEvent.text_delta(text, self._next_sequence())

    def _create_tool_calls(self, tool_calls: list[ToolCall]) -> ChatEvent:
        """Create a completed-tool-calls event."""
        return ChatEvent.tool_calls_completed(tool_calls, self._next_sequence())

    def _create_error(self, message: str, error_type: ErrorType) -> ChatEvent:
        """Create an error event."""
        return ChatEvent.error_event(message, error_type, self._next_sequence())

    def _create_done(self) -> ChatEvent:
        """Create a done event."""
        return ChatEvent.done(self._next_sequence())

    def _fail(
        self,
        aggregator: ToolCallAggregator,
        message: str,
        error_type: ErrorType,
    ) -> list[ChatEvent]:
        """Build the closing events for a failed stream.

        Tool calls still being assembled are flushed (best-effort parse)
        ahead of the terminal error so they are never silently dropped.
        """
        events: list[ChatEvent] = []
        if len(aggregator):
            partial = aggregator.finish_all()
            logger.warning(
                f"{self.PROVIDER_NAME} stream failed with {len(partial)} "
                "tool call(s) still open"
            )
            events.append(self._create_tool_calls(partial))
        events.append(self._create_error(message, error_type))
        return events

    def _format_tools_for_api(
        self, tools: list[ToolDefinition]
    ) -> list[dict[str, Any]]:
        """Convert tool definitions to API format.

        Subclasses must override for provider-specific formatting.
        """
        raise NotImplementedError("Subclass must implement _format_tools_for_api")

    @abstractmethod
    async def chat(
        self,
        messages: Sequence[Message],
        tools: Optional[list[ToolDefinition]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[ChatEvent]:
        """Generate a response. Must be implemented by subclasses."""
        pass

    async def close(self) -> None:
        """Release the underlying client."""
        client = getattr(self, "client", None)
        if client is not None:
            await client.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
