"""
Tool Registry.

In-process tool catalog. Registers plain Python callables (sync or
async) together with their JSON schema, and executes them by name on
behalf of the orchestrator.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..domain.entities import ToolDefinition, ToolOutput
from ..domain.ports import IToolExecutor

logger = logging.getLogger(__name__)


@dataclass
class RegisteredTool:
    """A tool definition bound to the callable that implements it."""

    definition: ToolDefinition
    func: Callable[..., Any]


class ToolRegistry(IToolExecutor):
    """Registry of in-process agent tools.

    Usage:
        registry = ToolRegistry()

        @registry.tool(
            description="Resize a video clip",
            parameters={
                "type": "object",
                "properties": {"height": {"type": "integer"}},
                "required": ["height"],
            },
        )
        async def resize_video(height: int) -> dict:
            ...

        tools = await registry.list_tool_schemas()
        output = await registry.execute("resize_video", {"height": 480})

    Architecture:
        - Arguments are passed to the callable as keyword arguments
        - Sync callables run inline; coroutine results are awaited
        - Every failure is returned as ``ToolOutput.error``
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def register(self, definition: ToolDefinition, func: Callable[..., Any]) -> None:
        """Register a callable under ``definition.name``.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if definition.name in self._tools:
            raise ValueError(f"Tool already registered: {definition.name}")
        self._tools[definition.name] = RegisteredTool(definition=definition, func=func)
        logger.debug(f"Registered tool: {definition.name}")

    def add_tool(
        self,
        name: str,
        func: Callable[..., Any],
        description: Optional[str] = None,
        parameters: Optional[dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> ToolDefinition:
        """Register a callable, deriving the description from its docstring."""
        if description is None:
            doc = inspect.getdoc(func) or ""
            description = doc.split("\n")[0] if doc else ""

        definition = ToolDefinition(
            name=name,
            description=description,
            parameters=parameters or {},
            timeout_seconds=timeout_seconds,
        )
        self.register(definition, func)
        return definition

    def tool(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parameters: Optional[dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``add_tool``."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add_tool(
                name or func.__name__,
                func,
                description=description,
                parameters=parameters,
                timeout_seconds=timeout_seconds,
            )
            return func

        return decorator

    async def list_tool_schemas(self) -> list[ToolDefinition]:
        """List registered tools in registration order."""
        return [registered.definition for registered in self._tools.values()]

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        """Execute a registered tool.

        Args:
            name: Tool name
            arguments: Keyword arguments for the callable

        Returns:
            ToolOutput with the callable's return value or an error
        """
        registered = self._tools.get(name)
        if registered is None:
            return ToolOutput(error=f"Tool not found: {name}")

        try:
            result = registered.func(**arguments)
            if inspect.isawaitable(result):
                result = await result
        except TypeError as e:
            logger.warning(f"Invalid arguments for tool {name}: {e}")
            return ToolOutput(error=f"Invalid arguments for {name}: {e}")
        except Exception as e:
            logger.error(f"Tool {name} raised: {e}")
            return ToolOutput(error=f"Tool execution failed: {e}")

        if isinstance(result, ToolOutput):
            return result
        return ToolOutput(content=result)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
