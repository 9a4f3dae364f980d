"""
Agent Orchestrator.

Main orchestration logic for the editing agent. Coordinates:
- LLM calls with streaming
- Tool execution and result handling
- Conversation management
- Event streaming to clients
- Cancellation of in-flight requests
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, Optional

from ..domain.entities import (
    ChatEvent,
    ChatEventType,
    Conversation,
    ErrorType,
    Message,
    MessageRole,
    ToolCall,
    ToolDefinition,
    ToolResult,
)
from ..domain.exceptions import ConversationBusyError
from ..domain.ports import ILLMProvider, IToolExecutor
from ..security.error_sanitizer import sanitize_error_message
from .chat_stream import ChatStream
from .event_streamer import EventStreamer
from .tool_executor import ToolExecutor

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Request cancelled"
TOOL_CANCELLED_MESSAGE = "Cancelled before the tool result was received"

DEFAULT_SYSTEM_PROMPT = """You are an expert video editing assistant powered by a comprehensive MCP (Model Context Protocol) server with 70+ professional video editing tools.

Your capabilities include:
- Video operations: trimming, concatenation, resizing, transcoding
- Visual effects: blur, color grading, chroma key, vignette, sharpening
- Audio editing: trimming, mixing, normalization, voice cloning, text-to-speech
- Compositing: picture-in-picture, split screen, side-by-side
- Text and graphics: overlays, animations, subtitles, shapes
- Transcript operations: extraction, search, smart editing based on dialogue
- Timeline management: full undo/redo with operation history
- Multi-take editing: automatic analysis and selection of best takes
- Vision analysis: AI-powered content understanding with GPT-4 Vision

When helping users:
1. Ask clarifying questions if requirements are unclear
2. Suggest the best approach for their needs
3. Execute operations step-by-step, explaining what you're doing
4. Use the timeline system to allow undoing mistakes
5. Optimize for quality by default, but ask about delivery format
6. Proactively suggest enhancements (e.g., color correction, audio normalization)

Always be helpful, clear, and focused on delivering professional results."""


@dataclass
class AgentConfig:
    """Configuration for the agent orchestrator.

    Attributes:
        system_prompt: System prompt for the LLM
        max_turns: Maximum LLM round-trips per request (None = unbounded)
        parallel_tool_calls: Run the tool calls of one turn concurrently
        tool_timeout_seconds: Default per-tool timeout (None = no limit)
        temperature: LLM temperature (None = provider default)
        max_tokens: Maximum tokens per response (None = provider default)
        stream_buffer_size: Capacity of each caller-facing ChatStream
        sanitize_errors: Redact secrets from provider errors shown to callers
    """

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_turns: Optional[int] = None
    parallel_tool_calls: bool = False
    tool_timeout_seconds: Optional[float] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream_buffer_size: int = 64
    sanitize_errors: bool = True


class AgentOrchestrator:
    """Main agent orchestration logic.

    Manages the conversation loop:
    1. Receive user message
    2. Call LLM with the conversation and tools, streaming text out
    3. Execute tool calls if any
    4. Loop back to LLM with results
    5. Stop on a tool-call-free answer, an error, or cancellation

    Holds exactly one conversation. Every ``send_message`` request runs
    in its own task and produces a ChatStream that always ends with
    exactly one terminal event (``done`` or ``error``).

    Usage:
        orchestrator = AgentOrchestrator(
            llm_provider=anthropic_provider,
            tool_collaborator=registry,
        )

        stream = await orchestrator.send_message("resize the clip to 480p")
        async for event in stream:
            print(event.to_dict())
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        tool_collaborator: IToolExecutor,
        config: Optional[AgentConfig] = None,
    ):
        """Initialize the orchestrator.

        Args:
            llm_provider: Backend adapter used for every turn
            tool_collaborator: Tool catalog and execution engine
            config: Agent configuration
        """
        self.llm = llm_provider
        self.config = config or AgentConfig()
        self.tools = ToolExecutor(
            tool_collaborator,
            default_timeout=self.config.tool_timeout_seconds,
            parallel=self.config.parallel_tool_calls,
        )
        self.conversation = Conversation(self.config.system_prompt)

        # Held by the running request for its whole lifetime
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_busy(self) -> bool:
        """True while a request is in flight."""
        return self._lock.locked()

    async def send_message(self, text: str) -> ChatStream:
        """Start processing a user message.

        Returns as soon as the request is running; the caller drains the
        returned stream (or cancels it).

        Raises:
            ValueError: If the message is empty
            ConversationBusyError: If a request is already in flight
        """
        if not text or not text.strip():
            raise ValueError("Message cannot be empty")
        if self._lock.locked():
            raise ConversationBusyError()

        await self._lock.acquire()
        try:
            self.conversation.append(Message(role=MessageRole.USER, content=text))
            stream = ChatStream(maxsize=self.config.stream_buffer_size)
            streamer = EventStreamer(correlation_id=str(uuid.uuid4()))
            task = asyncio.create_task(self._run(stream, streamer))
        except BaseException:
            self._lock.release()
            raise

        self._task = task
        stream.attach(task)
        logger.info(f"Processing message (correlation_id={streamer.correlation_id})")

        # Let the task enter _run so that a cancel always reaches its handlers
        try:
            await asyncio.sleep(0)
        except asyncio.CancelledError:
            task.cancel()
            raise

        return stream

    def cancel(self) -> bool:
        """Cancel the in-flight request, if any.

        Returns:
            True if a running request was signalled
        """
        task = self._task
        if task is None or task.done():
            return False
        logger.info("Cancelling in-flight request")
        return task.cancel()

    async def get_history(self) -> Conversation:
        """Return a snapshot of the conversation."""
        async with self._lock:
            return self.conversation.snapshot()

    async def clear_history(self) -> None:
        """Truncate the conversation to its system message."""
        async with self._lock:
            self.conversation.reset()
            self.tools.invalidate()
        logger.info("Conversation history cleared")

    async def close(self) -> None:
        """Cancel any in-flight request and wait for it to wind down."""
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    async def _run(self, stream: ChatStream, streamer: EventStreamer) -> None:
        """Run one request and guarantee its stream is closed."""
        terminal: Optional[ChatEvent] = None
        try:
            terminal = await self._turn_loop(stream, streamer)
        except asyncio.CancelledError:
            logger.info("Request cancelled")
            terminal = streamer.create_event(
                ChatEventType.ERROR,
                error=CANCELLED_MESSAGE,
                error_type=ErrorType.CANCELLED,
            )
        except Exception as e:
            logger.exception(f"Chat error: {e}")
            terminal = streamer.create_event(
                ChatEventType.ERROR,
                error=self._sanitize(f"An error occurred: {e}"),
                error_type=ErrorType.FATAL,
            )
        finally:
            self._task = None
            self._lock.release()
            await stream.close(terminal)

    async def _turn_loop(self, stream: ChatStream, streamer: EventStreamer) -> ChatEvent:
        """Alternate LLM turns and tool execution until a final answer.

        Returns:
            The terminal event for the request
        """
        tools = await self.tools.load_tool_definitions()
        turn = 0

        while True:
            if self.config.max_turns is not None and turn >= self.config.max_turns:
                logger.warning(f"Stopping after {turn} turns without a final answer")
                return streamer.create_event(
                    ChatEventType.ERROR,
                    error=f"Stopped after {turn} turns without a final answer",
                    error_type=ErrorType.TURN_LIMIT,
                    metadata=self._metadata(turn),
                )
            turn += 1

            content, tool_calls, final = await self._stream_turn(stream, streamer, tools)

            if final.type == ChatEventType.ERROR:
                raw_error = final.error or "Unknown provider error"
                logger.error(f"LLM provider error ({final.error_type}): {raw_error}")
                error = self._sanitize(raw_error)
                self._append_partial(content, tool_calls, error)
                if tool_calls:
                    await stream.put(
                        streamer.create_event(
                            ChatEventType.TOOL_RESULTS,
                            tool_calls=tool_calls,
                            tool_results=[],
                        )
                    )
                return streamer.create_event(
                    ChatEventType.ERROR,
                    error=error,
                    error_type=final.error_type or ErrorType.FATAL,
                    metadata=self._metadata(turn),
                )

            self.conversation.append(
                Message(
                    role=MessageRole.ASSISTANT,
                    content=content,
                    tool_calls=tool_calls,
                )
            )

            if not tool_calls:
                return streamer.create_event(ChatEventType.DONE, metadata=self._metadata(turn))

            logger.info(f"Turn {turn}: executing {len(tool_calls)} tool call(s)")
            results = await self._execute_tools(stream, streamer, tool_calls)
            self.conversation.append(
                Message(role=MessageRole.ASSISTANT, tool_results=results)
            )
            await stream.put(
                streamer.create_event(
                    ChatEventType.TOOL_RESULTS,
                    tool_calls=tool_calls,
                    tool_results=results,
                )
            )

    async def _stream_turn(
        self,
        stream: ChatStream,
        streamer: EventStreamer,
        tools: list[ToolDefinition],
    ) -> tuple[str, list[ToolCall], ChatEvent]:
        """Consume one provider stream.

        Returns:
            Tuple of (assistant text, completed tool calls, terminal event)
        """
        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        final: Optional[ChatEvent] = None

        try:
            events = self.llm.chat(
                messages=self.conversation.messages,
                tools=tools or None,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
            async with aclosing(events):
                async for event in events:
                    if event.type == ChatEventType.TEXT_DELTA:
                        if event.content:
                            text_parts.append(event.content)
                            await stream.put(streamer.restamp(event))
                    elif event.type == ChatEventType.TOOL_CALLS:
                        tool_calls.extend(event.tool_calls or [])
                    elif event.is_terminal:
                        final = event
                        break
                    else:
                        logger.warning(f"Ignoring unexpected {event.type.value} event from provider")
        except asyncio.CancelledError:
            self._append_partial("".join(text_parts), tool_calls, CANCELLED_MESSAGE)
            if tool_calls:
                await self._publish_while_cancelling(
                    stream,
                    streamer.create_event(
                        ChatEventType.TOOL_RESULTS,
                        tool_calls=tool_calls,
                        tool_results=[],
                    ),
                )
            raise

        if final is None:
            logger.error("Provider stream ended without a terminal event")
            final = ChatEvent.error_event(
                "Provider stream ended without a terminal event", ErrorType.FATAL, 0
            )

        return "".join(text_parts), tool_calls, final

    async def _execute_tools(
        self,
        stream: ChatStream,
        streamer: EventStreamer,
        tool_calls: list[ToolCall],
    ) -> list[ToolResult]:
        """Execute a turn's tool calls, recording results even on cancel."""
        results: list[ToolResult] = []
        try:
            result_iter = self.tools.iter_results(tool_calls)
            async with aclosing(result_iter):
                async for result in result_iter:
                    results.append(result)
        except asyncio.CancelledError:
            received = {result.tool_call_id for result in results}
            results.extend(
                ToolResult.failure(tc.id, TOOL_CANCELLED_MESSAGE)
                for tc in tool_calls
                if tc.id not in received
            )
            self.conversation.append(
                Message(role=MessageRole.ASSISTANT, tool_results=results)
            )
            await self._publish_while_cancelling(
                stream,
                streamer.create_event(
                    ChatEventType.TOOL_RESULTS,
                    tool_calls=tool_calls,
                    tool_results=results,
                ),
            )
            raise
        return results

    async def _publish_while_cancelling(
        self, stream: ChatStream, event: ChatEvent
    ) -> None:
        """Publish partial tool activity on the way out of a cancelled request.

        Uses ``push()`` so a departed consumer cannot block the shutdown.
        """
        try:
            await stream.push(event)
        except asyncio.CancelledError:
            logger.warning("Cancelled again while publishing partial tool activity")

    def _append_partial(
        self, content: str, tool_calls: list[ToolCall], error: str
    ) -> None:
        """Record whatever a failed turn produced, annotated with the error."""
        if not content and not tool_calls:
            return
        self.conversation.append(
            Message(
                role=MessageRole.ASSISTANT,
                content=content,
                tool_calls=tool_calls,
                error=error,
            )
        )

    def _metadata(self, turn: int) -> dict[str, Any]:
        metadata: dict[str, Any] = {"turns": turn}
        if self.tools.load_error is not None:
            metadata["tools_unavailable"] = True
        return metadata

    def _sanitize(self, message: str) -> str:
        if not self.config.sanitize_errors:
            return message
        return sanitize_error_message(message)
