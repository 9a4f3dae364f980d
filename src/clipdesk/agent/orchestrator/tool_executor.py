"""
Tool Executor.

Handles execution of tool calls with error handling and result processing.
Wraps the tool collaborator so that every call produces exactly one
ToolResult, whatever happens inside the tool.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import AsyncIterator, Optional

from ..domain.entities import ToolCall, ToolDefinition, ToolResult
from ..domain.ports import IToolExecutor

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Executes tool calls with error handling.

    Provides a wrapper around the tool collaborator to execute tool calls
    with timeouts, logging, and result normalization. Tool failures are
    returned as failed ToolResults rather than propagating exceptions, so
    the model can see the failure and respond to it.

    Usage:
        executor = ToolExecutor(tool_registry)
        await executor.load_tool_definitions()

        async for result in executor.iter_results(tool_calls):
            print(result.tool_call_id, result.success)

    Architecture:
        - Delegates to IToolExecutor for discovery and execution
        - Unknown tools, timeouts and exceptions become failed results
        - Results are always produced in call order, even when
          ``parallel`` runs the calls concurrently
    """

    def __init__(
        self,
        collaborator: IToolExecutor,
        default_timeout: Optional[float] = None,
        parallel: bool = False,
    ):
        """Initialize the tool executor.

        Args:
            collaborator: Tool catalog and execution engine
            default_timeout: Per-call timeout in seconds when the tool
                definition sets none (None = no limit)
            parallel: Run the calls of one turn concurrently
        """
        self.collaborator = collaborator
        self.default_timeout = default_timeout
        self.parallel = parallel
        self._definitions: Optional[dict[str, ToolDefinition]] = None
        # Set while the latest listing attempt failed
        self.load_error: Optional[str] = None

    @property
    def definitions(self) -> list[ToolDefinition]:
        """Cached tool definitions (empty until loaded)."""
        return list((self._definitions or {}).values())

    async def load_tool_definitions(self) -> list[ToolDefinition]:
        """Load and cache the collaborator's tool schemas.

        A failed listing is logged and not cached, so the next turn
        retries it.
        """
        if self._definitions is not None:
            return self.definitions

        try:
            tools = await self.collaborator.list_tool_schemas()
        except Exception as e:
            logger.error(f"Failed to load tool definitions: {e}")
            self.load_error = str(e) or type(e).__name__
            return []

        self.load_error = None
        self._definitions = {tool.name: tool for tool in tools}
        logger.info(f"Loaded {len(self._definitions)} tool definitions")
        return self.definitions

    def invalidate(self) -> None:
        """Drop the cached tool definitions."""
        self._definitions = None

    async def execute_tool_call(self, tool_call: ToolCall) -> ToolResult:
        """Execute one tool call. Never raises for tool failures.

        Args:
            tool_call: Tool call to execute

        Returns:
            ToolResult correlated to ``tool_call.id``
        """
        definitions = self._definitions or {}
        definition = definitions.get(tool_call.name)
        if definition is None:
            logger.warning(f"Model requested unknown tool: {tool_call.name}")
            return ToolResult.failure(tool_call.id, f"Unknown tool: {tool_call.name}")

        timeout = definition.timeout_seconds or self.default_timeout

        logger.info(f"Executing tool: {tool_call.name}")
        start = time.monotonic()

        try:
            output = await asyncio.wait_for(
                self.collaborator.execute(tool_call.name, tool_call.arguments),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.warning(f"Tool {tool_call.name} timed out after {timeout}s")
            return ToolResult.failure(
                tool_call.id,
                f"Tool {tool_call.name} timed out after {timeout} seconds",
                latency_ms=latency_ms,
            )
        except Exception as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.error(f"Tool execution failed: {e}")
            return ToolResult.failure(
                tool_call.id, str(e) or type(e).__name__, latency_ms=latency_ms
            )

        latency_ms = int((time.monotonic() - start) * 1000)

        if output.error is not None:
            logger.info(f"Tool {tool_call.name} reported an error: {output.error}")
            return ToolResult.failure(
                tool_call.id, output.error or "Tool failed", latency_ms=latency_ms
            )

        content = output.content
        if content is None:
            content = ""
        elif not isinstance(content, str):
            content = json.dumps(content, default=str)

        logger.debug(f"Tool {tool_call.name} result: {content[:200]}")
        return ToolResult.ok(tool_call.id, content, latency_ms=latency_ms)

    async def iter_results(self, tool_calls: list[ToolCall]) -> AsyncIterator[ToolResult]:
        """Yield one result per call, in call order.

        Each execution is shielded: if the consumer is cancelled, a tool
        that already started runs to completion in the background and its
        result is discarded. Calls not yet started are never started.
        """
        if not self.parallel:
            for tool_call in tool_calls:
                yield await asyncio.shield(self.execute_tool_call(tool_call))
            return

        tasks = [
            asyncio.ensure_future(self.execute_tool_call(tool_call))
            for tool_call in tool_calls
        ]
        for task in tasks:
            yield await asyncio.shield(task)
