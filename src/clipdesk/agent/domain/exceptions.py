"""Exception hierarchy for the editing agent.

Exception Hierarchy:
    AgentError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── InvalidTurnOrder (programming error - conversation invariant broken)
    ├── ConversationBusyError (recoverable - wait for the running turn)
    └── ToolExecutionError (recoverable - reported back to the model)

Transport failures from a backend are not raised: providers turn them
into terminal error events. Tool failures are turned into failed tool
results by the orchestrator.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


class AgentError(Exception):
    """Base exception for all agent errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "INVALIDTURNORDER")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether retrying might succeed
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.utcnow()
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for structured logging / API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        return self.message


class ConfigurationError(AgentError):
    """Invalid or missing configuration (unknown provider, missing API key)."""


class InvalidTurnOrder(AgentError):
    """A message would violate the conversation's ordering invariants.

    Indicates a defect in the caller, never an external fault.
    """


class ConversationBusyError(AgentError):
    """A turn is already running for this conversation."""

    def __init__(self, message: str = "A message is already being processed"):
        super().__init__(message, recoverable=True)


class ToolExecutionError(AgentError):
    """A tool collaborator failed to execute a tool."""

    def __init__(
        self,
        message: str,
        tool_name: str,
        recoverable: bool = True,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            details={"tool_name": tool_name},
            cause=cause,
            recoverable=recoverable,
        )
        self.tool_name = tool_name
