"""
Caller-facing event stream.

A bounded, ordered, single-producer single-consumer channel of
ChatEvents. The orchestrator's turn loop is the only producer; the
caller drains it with ``async for``. Closing the stream, not a sentinel
value, is what ends iteration.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Optional

from ..domain.entities import ChatEvent

logger = logging.getLogger(__name__)


class ChatStream:
    """Bounded async channel of ChatEvents for one ``send_message`` call.

    Usage:
        stream = orchestrator.send_message("resize the clip to 480p")
        async for event in stream:
            if event.type == ChatEventType.TEXT_DELTA:
                print(event.content, end="")

    The producer blocks in ``put()`` while the buffer is full, so a slow
    consumer throttles the turn loop instead of growing memory. The
    terminal event is delivered by ``close()`` and may exceed capacity so
    that closing never blocks; ``push()`` likewise ignores capacity for the
    few events published while a request is being cancelled.
    """

    def __init__(self, maxsize: int = 64):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self._buffer: deque[ChatEvent] = deque()
        self._condition = asyncio.Condition()
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, task: asyncio.Task) -> None:
        """Bind the producing task so that ``cancel()`` can reach it."""
        self._task = task

    async def put(self, event: ChatEvent) -> None:
        """Enqueue an event, waiting while the buffer is full.

        Raises:
            RuntimeError: If the stream is already closed
        """
        async with self._condition:
            await self._condition.wait_for(
                lambda: self._closed or len(self._buffer) < self.maxsize
            )
            if self._closed:
                raise RuntimeError("ChatStream is closed")
            self._buffer.append(event)
            self._condition.notify_all()

    async def push(self, event: ChatEvent) -> None:
        """Enqueue an event without waiting for capacity.

        For the cancellation path, where the consumer may already be gone
        and ``put()`` could wait forever.

        Raises:
            RuntimeError: If the stream is already closed
        """
        async with self._condition:
            if self._closed:
                raise RuntimeError("ChatStream is closed")
            self._buffer.append(event)
            self._condition.notify_all()

    async def close(self, final_event: Optional[ChatEvent] = None) -> None:
        """Deliver the terminal event (if any) and close the stream.

        Raises:
            RuntimeError: If the stream was already closed
        """
        async with self._condition:
            if self._closed:
                raise RuntimeError("ChatStream already closed")
            if final_event is not None:
                self._buffer.append(final_event)
            self._closed = True
            self._condition.notify_all()

    def cancel(self) -> bool:
        """Cancel the producing request.

        The producer still publishes a terminal ``cancelled`` error and
        closes the stream.

        Returns:
            True if a running request was signalled
        """
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    async def collect(self) -> list[ChatEvent]:
        """Drain the stream into a list."""
        return [event async for event in self]

    def __aiter__(self) -> ChatStream:
        return self

    async def __anext__(self) -> ChatEvent:
        async with self._condition:
            await self._condition.wait_for(lambda: self._buffer or self._closed)
            if not self._buffer:
                raise StopAsyncIteration
            event = self._buffer.popleft()
            self._condition.notify_all()
            return event
