"""
Streaming tool-call aggregation.

Backends deliver a tool call's arguments as an arbitrary sequence of
partial JSON strings interleaved with other stream events. The
ToolCallAggregator collects those fragments per call and only parses
them once the backend signals that the call is complete.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Optional

from ..domain.entities import ToolCall

logger = logging.getLogger(__name__)

# Key used when the assembled arguments are not a JSON object
RAW_ARGUMENTS_KEY = "input"


def parse_tool_arguments(raw: str) -> dict[str, Any]:
    """Parse a fully-assembled argument payload.

    Falls back to wrapping the raw string under ``RAW_ARGUMENTS_KEY``
    so that a malformed call still reaches the tool executor.
    """
    if not raw or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Malformed tool arguments, passing raw string through: {e}")
        return {RAW_ARGUMENTS_KEY: raw}
    if not isinstance(parsed, dict):
        logger.warning(
            f"Tool arguments are a JSON {type(parsed).__name__}, not an object"
        )
        return {RAW_ARGUMENTS_KEY: raw}
    return parsed


@dataclass
class _PendingToolCall:
    id: Optional[str] = None
    name: Optional[str] = None
    fragments: list[str] = field(default_factory=list)


class ToolCallAggregator:
    """Assembles complete tool calls from streaming fragments.

    Accumulators are keyed by the backend's transient per-call key
    (Anthropic content block index, OpenAI tool call index). One
    aggregator lives for a single provider ``chat()`` invocation.

    Usage:
        aggregator = ToolCallAggregator()
        aggregator.start(0, call_id="toolu_1", name="resize")
        aggregator.add_fragment(0, '{"height"')
        aggregator.add_fragment(0, ': 480}')
        tool_call = aggregator.finish(0)
    """

    def __init__(self) -> None:
        self._pending: dict[Hashable, _PendingToolCall] = {}

    def start(
        self,
        key: Hashable,
        call_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        """Register a call, or fill in its id/name if already known."""
        pending = self._pending.get(key)
        if pending is None:
            pending = _PendingToolCall()
            self._pending[key] = pending
        if call_id and not pending.id:
            pending.id = call_id
        if name and not pending.name:
            pending.name = name

    def add_fragment(self, key: Hashable, fragment: str) -> None:
        """Append a partial argument string to a call's accumulator."""
        if key not in self._pending:
            self.start(key)
        if fragment:
            self._pending[key].fragments.append(fragment)

    def finish(self, key: Hashable) -> ToolCall:
        """Close a call and return the resolved ToolCall.

        Raises:
            KeyError: If no call is being assembled under ``key``
        """
        pending = self._pending.pop(key)
        arguments = parse_tool_arguments("".join(pending.fragments))
        tool_call = ToolCall(name=pending.name or "", arguments=arguments)
        # Stream keys repeat across turns; only a backend id is kept as-is
        if pending.id:
            tool_call.id = pending.id
        return tool_call

    def finish_all(self) -> list[ToolCall]:
        """Close every open call, in the order they were first seen."""
        return [self.finish(key) for key in list(self._pending)]

    def __contains__(self, key: Hashable) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)
