"""Security helpers for the agent module."""

from .error_sanitizer import (
    ErrorSanitizer,
    SanitizationResult,
    get_sanitizer,
    sanitize_error_message,
)

__all__ = [
    "ErrorSanitizer",
    "SanitizationResult",
    "get_sanitizer",
    "sanitize_error_message",
]
