"""
OpenAI GPT LLM Provider.

Implements the ILLMProvider interface for OpenAI's chat completion models.
Supports streaming and tool calling.
"""

from __future__ import annotations

import json
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

# Lazy import to avoid requiring openai if not used
try:
    import openai
    from openai import AsyncOpenAI

    OPENAI_AVAILABLE = True
except ImportError:
    OPENAI_AVAILABLE = False
    openai = None
    AsyncOpenAI = None


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT provider implementation.

    Supports:
    - GPT-4, GPT-4 Turbo, GPT-4o
    - Streaming responses
    - Tool/function calling

    Usage:
        config = LLMProviderConfig(
            api_key="sk-...",
            model="gpt-4-turbo-preview",
        )
        provider = OpenAIProvider(config)

        async for event in provider.chat(messages, tools):
            print(event)
    """

    PROVIDER_NAME = "openai"

    DEFAULT_MODEL = "gpt-4-turbo-preview"

    def __init__(self, config: LLMProviderConfig):
        """Initialize the OpenAI provider.

        Args:
            config: Provider configuration

        Raises:
            ImportError: If openai package is not installed
            ConfigurationError: If no API key is configured
        """
        if not OPENAI_AVAILABLE:
            raise ImportError(
                "openai package is required for OpenAIProvider. "
                "Install with: pip install openai"
            )

        super().__init__(config)

        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    def _format_messages_for_api(
        self, messages: Sequence[Message]
    ) -> list[dict[str, Any]]:
        """Convert messages to OpenAI format.

        OpenAI includes the system message in the messages array and
        expects one ``tool``-role message per tool result.
        """
        api_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.tool_results:
                for tr in msg.tool_results:
                    api_messages.append({
                        "role": "tool",
                        "tool_call_id": tr.tool_call_id,
                        "content": tr.content if tr.success else f"Error: {tr.error}",
                    })
            elif msg.role == MessageRole.ASSISTANT and msg.tool_calls and not msg.failed:
                api_messages.append({
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {
                                "name": tc.name,
                                "arguments": json.dumps(tc.arguments),
                            },
                        }
                        for tc in msg.tool_calls
                    ],
                })
            elif msg.content or msg.role == MessageRole.SYSTEM:
                api_messages.append({
                    "role": msg.role.value,
                    "content": msg.content,
                })

        return api_messages

    def _format_tools_for_api(
        self, tools: list[ToolDefinition]
    ) -> list[dict[str, Any]]:
        """Convert tools to OpenAI format."""
        return [tool.to_openai_format() for tool in tools]

    async def chat(
        self,
        messages: Sequence[Message],
        tools: Optional[list[ToolDefinition]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[ChatEvent]:
        """Generate a streaming response using GPT.

        Args:
            messages: Conversation history, system message first
            tools: Available tools
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Yields:
            ChatEvent objects
        """
        self._reset_sequence()

        api_messages = self._format_messages_for_api(messages)

        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": api_messages,
            "stream": True,
        }

        if temperature is None:
            temperature = self.config.temperature
        if temperature is not None:
            kwargs["temperature"] = temperature

        max_tokens = max_tokens or self.config.max_tokens
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        if tools:
            kwargs["tools"] = self._format_tools_for_api(tools)
            kwargs["tool_choice"] = "auto"

        # Keyed by delta.tool_calls[].index
        aggregator = ToolCallAggregator()
        # Position of the current call for servers that omit the index
        unindexed_calls = 0
        current_id: Optional[str] = None

        try:
            stream_response = await self.client.chat.completions.create(**kwargs)

            async with stream_response:
                async for chunk in stream_response:
                    choice = chunk.choices[0] if chunk.choices else None
                    if not choice:
                        continue

                    delta = choice.delta

                    if delta is not None and delta.content:
                        yield self._create_text_delta(delta.content)

                    if delta is not None and delta.tool_calls:
                        for tc in delta.tool_calls:
                            function = tc.function
                            key = tc.index
                            if key is None:
                                # A new id, or a name without an id, starts the next call
                                starts_call = (
                                    unindexed_calls == 0
                                    or (tc.id and tc.id != current_id)
                                    or (not tc.id and function is not None and function.name)
                                )
                                if starts_call:
                                    unindexed_calls += 1
                                    current_id = tc.id
                                key = f"position_{unindexed_calls - 1}"
                            aggregator.start(
                                key,
                                call_id=tc.id,
                                name=function.name if function else None,
                            )
                            if function and function.arguments:
                                aggregator.add_fragment(key, function.arguments)

                    # finish_reason closes every open call at once
                    if choice.finish_reason:
                        break

            if len(aggregator):
                yield self._create_tool_calls(aggregator.finish_all())

            yield self._create_done()

        except openai.AuthenticationError as e:
            logger.error(f"OpenAI authentication failed: {e}")
            for event in self._fail(aggregator, "Invalid OpenAI API key", ErrorType.FATAL):
                yield event
        except openai.RateLimitError as e:
            logger.warning(f"Rate limited by OpenAI: {e}")
            for event in self._fail(aggregator, f"Rate limited: {e}", ErrorType.RATE_LIMIT):
                yield event
        except openai.APITimeoutError as e:
            logger.error(f"OpenAI API timeout: {e}")
            for event in self._fail(aggregator, f"Request timed out: {e}", ErrorType.TIMEOUT):
                yield event
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            for event in self._fail(aggregator, f"OpenAI API error: {e}", ErrorType.RECOVERABLE):
                yield event
        except Exception as e:
            logger.exception(f"Unexpected error in OpenAI chat: {e}")
            for event in self._fail(aggregator, str(e) or type(e).__name__, ErrorType.FATAL):
                yield event
