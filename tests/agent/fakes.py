"""
Test doubles for the agent test suite.

- ScriptedProvider: ILLMProvider that replays canned ChatEvents per turn
- FakeToolCollaborator: IToolExecutor backed by plain Python handlers
- FakeSDKStream: stand-in for the anthropic/openai SDK stream objects
"""

import asyncio
import inspect
from types import SimpleNamespace
from typing import Any, Callable, Optional

from clipdesk.agent.domain.entities import (
    ChatEvent,
    ErrorType,
    ToolCall,
    ToolDefinition,
    ToolOutput,
)
from clipdesk.agent.domain.ports import ILLMProvider, IToolExecutor


# ============================================
# Event helpers
# ============================================


def text(content: str) -> ChatEvent:
    return ChatEvent.text_delta(content, 0)


def calls(*tool_calls: ToolCall) -> ChatEvent:
    return ChatEvent.tool_calls_completed(list(tool_calls), 0)


def done() -> ChatEvent:
    return ChatEvent.done(0)


def error(message: str, error_type: ErrorType = ErrorType.RECOVERABLE) -> ChatEvent:
    return ChatEvent.error_event(message, error_type, 0)


class Pause:
    """Script item that blocks the provider stream until released."""

    def __init__(self) -> None:
        self.reached = asyncio.Event()
        self.release = asyncio.Event()


# ============================================
# Fakes
# ============================================


class ScriptedProvider(ILLMProvider):
    """Replays one script (a list of events / Pause markers) per chat() call."""

    def __init__(self, turns: list[list[Any]]):
        self.turns = list(turns)
        self.requests: list[list] = []
        self.tools_seen: list[Optional[list[ToolDefinition]]] = []
        self.closed_streams = 0

    @property
    def provider_name(self) -> str:
        return "scripted"

    @property
    def model_name(self) -> str:
        return "scripted-model"

    async def chat(self, messages, tools=None, temperature=None, max_tokens=None):
        self.requests.append(list(messages))
        self.tools_seen.append(tools)
        script = self.turns.pop(0) if self.turns else [done()]
        try:
            for item in script:
                if isinstance(item, Pause):
                    item.reached.set()
                    await item.release.wait()
                    continue
                yield item
        finally:
            self.closed_streams += 1

    async def close(self) -> None:
        pass


class FakeToolCollaborator(IToolExecutor):
    """Tool collaborator backed by a dict of handlers."""

    def __init__(
        self,
        handlers: Optional[dict[str, Callable[..., Any]]] = None,
        definitions: Optional[list[ToolDefinition]] = None,
    ):
        self.handlers = handlers or {}
        self.definitions = definitions if definitions is not None else [
            ToolDefinition(
                name=name,
                description=f"{name} tool",
                parameters={"type": "object", "properties": {}},
            )
            for name in self.handlers
        ]
        self.executed: list[tuple[str, dict[str, Any]]] = []
        self.list_calls = 0

    async def list_tool_schemas(self) -> list[ToolDefinition]:
        self.list_calls += 1
        return list(self.definitions)

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        self.executed.append((name, arguments))
        handler = self.handlers.get(name)
        if handler is None:
            return ToolOutput(error=f"Tool not found: {name}")
        result = handler(**arguments)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, ToolOutput):
            return result
        return ToolOutput(content=result)


class FakeSDKStream:
    """Async context manager and iterator over canned SDK stream events."""

    def __init__(self, events: list[Any], raise_after: Optional[BaseException] = None):
        self.events = list(events)
        self.raise_after = raise_after
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self.events:
            yield event
        if self.raise_after is not None:
            raise self.raise_after


def ns(**kwargs: Any) -> SimpleNamespace:
    return SimpleNamespace(**kwargs)

