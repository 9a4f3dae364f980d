"""
Anthropic Claude LLM Provider.

Implements the ILLMProvider interface for Anthropic's Claude models.
Supports streaming and tool calling.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional, Sequence

from ..domain.entities import (
    ChatEvent,
    ErrorType,
    Message,
    MessageRole,
    ToolDefinition,
)
from .aggregator import ToolCallAggregator
from .base import BaseLLMProvider, LLMProviderConfig

logger = logging.getLogger(__name__)

# Lazy import to avoid requiring anthropic if not used
try:
    import anthropic
    from anthropic import AsyncAnthropic

    ANTHROPIC_AVAILABLE = True
except ImportError:
    ANTHROPIC_AVAILABLE = False
    anthropic = None
    AsyncAnthropic = None


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider implementation.

    Supports:
    - Claude 3+ models
    - Streaming responses
    - Tool calling, with arguments reassembled from input_json deltas

    Usage:
        config = LLMProviderConfig(
            api_key="sk-ant-...",
            model="claude-opus-4-20250514",
        )
        provider = AnthropicProvider(config)

        async for event in provider.chat(messages, tools):
            print(event)
    """

    PROVIDER_NAME = "anthropic"

    DEFAULT_MODEL = "claude-opus-4-20250514"
    DEFAULT_MAX_TOKENS = 4096

    def __init__(self, config: LLMProviderConfig):
        """Initialize the Anthropic provider.

        Args:
            config: Provider configuration

        Raises:
            ImportError: If anthropic package is not installed
            ConfigurationError: If no API key is configured
        """
        if not ANTHROPIC_AVAILABLE:
            raise ImportError(
                "anthropic package is required for AnthropicProvider. "
                "Install with: pip install anthropic"
            )

        super().__init__(config)

        self.client = AsyncAnthropic(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    def _format_messages_for_api(
        self, messages: Sequence[Message]
    ) -> tuple[Optional[str], list[dict[str, Any]]]:
        """Convert messages to Anthropic format.

        Anthropic takes the system prompt as a separate parameter and
        expects tool results inside a user turn.

        Returns:
            Tuple of (system_prompt, messages_list)
        """
        system: Optional[str] = None
        api_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system = msg.content or None
                continue

            if msg.tool_results:
                blocks = []
                for tr in msg.tool_results:
                    block: dict[str, Any] = {
                        "type": "tool_result",
                        "tool_use_id": tr.tool_call_id,
                        "content": tr.content if tr.success else f"Error: {tr.error}",
                    }
                    if not tr.success:
                        block["is_error"] = True
                    blocks.append(block)
                self._append_turn(api_messages, "user", blocks)
                continue

            blocks = []
            if msg.content:
                blocks.append({"type": "text", "text": msg.content})
            # A failed turn's tool calls never got results; replaying them
            # would leave an unanswered tool_use block.
            if msg.role == MessageRole.ASSISTANT and not msg.failed:
                for tc in msg.tool_calls:
                    blocks.append({
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.name,
                        "input": tc.arguments,
                    })
            if blocks:
                self._append_turn(api_messages, msg.role.value, blocks)

        return system, api_messages

    @staticmethod
    def _append_turn(
        api_messages: list[dict[str, Any]], role: str, blocks: list[dict[str, Any]]
    ) -> None:
        """Append a turn, merging into the previous one if the role repeats."""
        if api_messages and api_messages[-1]["role"] == role:
            api_messages[-1]["content"].extend(blocks)
        else:
            api_messages.append({"role": role, "content": list(blocks)})

    def _format_tools_for_api(
        self, tools: list[ToolDefinition]
    ) -> list[dict[str, Any]]:
        """Convert tools to Anthropic format."""
        return [tool.to_anthropic_format() for tool in tools]

    async def chat(
        self,
        messages: Sequence[Message],
        tools: Optional[list[ToolDefinition]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[ChatEvent]:
        """Generate a streaming response using Claude.

        Args:
            messages: Conversation history, system message first
            tools: Available tools
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Yields:
            ChatEvent objects
        """
        self._reset_sequence()

        system, api_messages = self._format_messages_for_api(messages)

        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": api_messages,
            "max_tokens": max_tokens or self.config.max_tokens or self.DEFAULT_MAX_TOKENS,
        }

        if temperature is None:
            temperature = self.config.temperature
        if temperature is not None:
            kwargs["temperature"] = temperature

        if system:
            kwargs["system"] = system

        if tools:
            kwargs["tools"] = self._format_tools_for_api(tools)

        # Keyed by content block index
        aggregator = ToolCallAggregator()

        try:
            async with self.client.messages.stream(**kwargs) as stream_response:
                async for event in stream_response:
                    event_type = getattr(event, "type", None)

                    if event_type == "content_block_start":
                        block = event.content_block
                        if getattr(block, "type", None) == "tool_use":
                            aggregator.start(event.index, call_id=block.id, name=block.name)

                    elif event_type == "content_block_delta":
                        delta = event.delta
                        delta_type = getattr(delta, "type", None)
                        if delta_type == "text_delta":
                            if delta.text:
                                yield self._create_text_delta(delta.text)
                        elif delta_type == "input_json_delta":
                            aggregator.add_fragment(event.index, delta.partial_json)

                    elif event_type == "content_block_stop":
                        if event.index in aggregator:
                            yield self._create_tool_calls([aggregator.finish(event.index)])

                    elif event_type == "message_stop":
                        break

            if len(aggregator):
                logger.warning("Anthropic stream ended with unterminated tool_use blocks")
                yield self._create_tool_calls(aggregator.finish_all())

            yield self._create_done()

        except anthropic.AuthenticationError as e:
            logger.error(f"Anthropic authentication failed: {e}")
            for event in self._fail(aggregator, "Invalid Anthropic API key", ErrorType.FATAL):
                yield event
        except anthropic.RateLimitError as e:
            logger.warning(f"Rate limited by Anthropic: {e}")
            for event in self._fail(aggregator, f"Rate limited: {e}", ErrorType.RATE_LIMIT):
                yield event
        except anthropic.APITimeoutError as e:
            logger.error(f"Anthropic API timeout: {e}")
            for event in self._fail(aggregator, f"Request timed out: {e}", ErrorType.TIMEOUT):
                yield event
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            for event in self._fail(aggregator, f"Claude API error: {e}", ErrorType.RECOVERABLE):
                yield event
        except Exception as e:
            logger.exception(f"Unexpected error in Anthropic chat: {e}")
            for event in self._fail(aggregator, str(e) or type(e).__name__, ErrorType.FATAL):
                yield event
