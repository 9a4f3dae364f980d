"""
Event Streamer for ChatEvent creation.

Manages event sequence state and creates ChatEvent objects with
auto-incrementing sequence numbers and a correlation ID, so that every
event a caller sees for one ``send_message`` request is ordered and
traceable.
"""

from __future__ import annotations

from typing import Any, Optional

from ..domain.entities import ChatEvent, ChatEventType


class EventStreamer:
    """Manages ChatEvent creation with sequence tracking.

    Adapters number their own events per backend stream; the orchestrator
    re-stamps everything it forwards so that sequence numbers are
    continuous across all turns of one request.

    Usage:
        streamer = EventStreamer(correlation_id=request_id)

        event1 = streamer.create_event(ChatEventType.TEXT_DELTA, content="Hello")
        # sequence = 1

        event2 = streamer.restamp(provider_event)
        # sequence = 2, other fields copied from provider_event
    """

    def __init__(self, correlation_id: Optional[str] = None):
        """Initialize the event streamer.

        Args:
            correlation_id: Optional correlation ID for request tracing
        """
        self.correlation_id = correlation_id
        self._sequence = 0

    def create_event(self, event_type: ChatEventType, **fields: Any) -> ChatEvent:
        """Create a ChatEvent with auto-incrementing sequence.

        Args:
            event_type: Type of event
            **fields: Remaining ChatEvent fields (content, tool_calls,
                tool_results, error, error_type, metadata)

        Returns:
            ChatEvent with incremented sequence number
        """
        self._sequence += 1
        return ChatEvent(
            type=event_type,
            sequence=self._sequence,
            correlation_id=self.correlation_id,
            **fields,
        )

    def restamp(self, event: ChatEvent) -> ChatEvent:
        """Copy a provider event into this request's sequence."""
        return self.create_event(
            event.type,
            content=event.content,
            tool_calls=event.tool_calls,
            tool_results=event.tool_results,
            error=event.error,
            error_type=event.error_type,
            metadata=event.metadata,
        )

    @property
    def sequence(self) -> int:
        """Get the current sequence number (before next increment)."""
        return self._sequence
