"""
Error Message Sanitization.

Backend and transport errors can carry credentials (API keys echoed
back by a proxy, bearer tokens in request dumps), local file paths and
network addresses. Everything shown to a caller, whether in a terminal
stream event or an HTTP error body, goes through this module first. The
original message is still logged internally.

Usage:
    from clipdesk.agent.security.error_sanitizer import sanitize_error_message

    try:
        ...
    except Exception as e:
        logger.error(f"Internal error: {e}")
        return {"detail": sanitize_error_message(str(e), "Internal server error")}

Instance-Based Usage:
    sanitizer = ErrorSanitizer()
    result = sanitizer.sanitize(str(e))
    if result.was_sanitized:
        logger.warning(f"Sanitized {result.redaction_count} sensitive items")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


@dataclass
class SanitizationResult:
    """Result of error message sanitization.

    Attributes:
        sanitized_message: Sanitized error message (safe to return to client)
        redaction_count: Number of redactions made
        original_length: Length of original message
        sanitized_length: Length of sanitized message
    """

    sanitized_message: str
    redaction_count: int
    original_length: int
    sanitized_length: int

    @property
    def was_sanitized(self) -> bool:
        """Check if any redactions were made."""
        return self.redaction_count > 0


class ErrorSanitizer:
    """Sanitizer for error messages shown to callers.

    Example:
        sanitizer = ErrorSanitizer()
        result = sanitizer.sanitize(
            "Error code: 401 - invalid x-api-key sk-ant-REDACTED"
        )
        print(result.sanitized_message)
        # Output: "Error code: 401 - invalid x-api-key [API_KEY]"

    Attributes:
        patterns: List of (regex_pattern, replacement) tuples
        max_message_length: Maximum length of sanitized messages
    """

    # Order matters - more specific patterns should come first
    DEFAULT_PATTERNS: list[tuple[str, str]] = [
        # Provider API keys (Anthropic sk-ant-..., OpenAI sk-... / sk-proj-...)
        (r'\bsk-(?:ant-|proj-)?[A-Za-z0-9_\-]{16,}', '[API_KEY]'),

        # Environment variable names holding credentials
        (r'\b(ANTHROPIC_API_KEY|CLAUDE_API_KEY|OPENAI_API_KEY|MCP_SERVICE_API_KEY)\b', '[ENV_VAR]'),

        # URLs with embedded credentials
        (r'\b[a-z][a-z0-9+\-.]*://[^\s/:@]+:[^\s/@]+@[^\s]+', '[URL_REDACTED]'),

        # Authentication tokens and keys
        (r'bearer\s+[A-Za-z0-9_\-\.=]+', 'Bearer [REDACTED]'),
        (r'authorization[:\s]+[^\s\n]+', 'Authorization: [REDACTED]'),
        (r'x-api-key[=:]\s*[^\s\n,;]+', 'x-api-key: [REDACTED]'),
        (r'api[-_]?key[=:]\s*[^\s\n,;]+', 'api_key=[REDACTED]'),
        (r'access[-_]?token[=:]\s*[^\s\n,;]+', 'access_token=[REDACTED]'),
        (r'secret[=:]\s*[^\s\n,;]+', 'secret=[REDACTED]'),
        (r'password[=:]\s*[^\s\n,;]+', 'password=[REDACTED]'),

        # File paths (Unix and Windows)
        (r'/(?:home|root|Users|usr|var|etc|opt|mnt)/[^\s\n,;]+', '[FILE_PATH]'),
        (r'[A-Z]:\\[^\s\n,;]+', '[FILE_PATH]'),

        # Stack traces (Python)
        (r'Traceback \(most recent call last\):[\s\S]*?(?=\n\n|\n[A-Z]|\Z)', '[STACK_TRACE]'),

        # IP addresses (v4)
        (r'\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b', '[IP_ADDRESS]'),

        # JWT tokens (three base64 segments separated by dots)
        (r'\beyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\b', '[JWT_REDACTED]'),

        # Long base64 strings (likely secrets/tokens)
        (r'\b[A-Za-z0-9+/]{40,}={0,2}', '[BASE64_REDACTED]'),

        # Generic hex strings that look like secrets (32+ chars)
        (r'\b[0-9a-fA-F]{32,}\b', '[HEX_STRING]'),
    ]

    def __init__(
        self,
        patterns: Optional[list[tuple[str, str]]] = None,
        max_message_length: int = 500,
    ):
        """Initialize the sanitizer.

        Args:
            patterns: Custom patterns to use (defaults to DEFAULT_PATTERNS)
            max_message_length: Maximum length of sanitized message
        """
        self.patterns = list(patterns or self.DEFAULT_PATTERNS)
        self.max_message_length = max_message_length
        self._compiled_patterns = [
            (re.compile(pattern, re.IGNORECASE), replacement)
            for pattern, replacement in self.patterns
        ]

    def sanitize(self, message: str, error_type: Optional[str] = None) -> SanitizationResult:
        """Sanitize an error message for safe client exposure.

        Args:
            message: Raw error message
            error_type: Optional error category used as a prefix

        Returns:
            SanitizationResult with sanitized message
        """
        if not message:
            sanitized = "An error occurred"
            return SanitizationResult(
                sanitized_message=sanitized,
                redaction_count=0,
                original_length=0,
                sanitized_length=len(sanitized),
            )

        original_length = len(message)
        sanitized = message
        redaction_count = 0

        for pattern, replacement in self._compiled_patterns:
            sanitized, count = pattern.subn(replacement, sanitized)
            redaction_count += count

        if len(sanitized) > self.max_message_length:
            sanitized = sanitized[: self.max_message_length] + "... [TRUNCATED]"

        if not sanitized.strip():
            sanitized = "An error occurred"

        if error_type and not sanitized.startswith(error_type):
            sanitized = f"{error_type}: {sanitized}"

        return SanitizationResult(
            sanitized_message=sanitized,
            redaction_count=redaction_count,
            original_length=original_length,
            sanitized_length=len(sanitized),
        )

    def add_pattern(self, pattern: str, replacement: str) -> None:
        """Add a custom sanitization pattern."""
        self.patterns.append((pattern, replacement))
        self._compiled_patterns.append(
            (re.compile(pattern, re.IGNORECASE), replacement)
        )

    def is_safe(self, message: str) -> bool:
        """True if no pattern would redact anything in ``message``."""
        return not any(pattern.search(message) for pattern, _ in self._compiled_patterns)


# Singleton instance for convenience
_default_sanitizer: Optional[ErrorSanitizer] = None


def get_sanitizer() -> ErrorSanitizer:
    """Get the default error sanitizer instance."""
    global _default_sanitizer
    if _default_sanitizer is None:
        _default_sanitizer = ErrorSanitizer()
    return _default_sanitizer


def sanitize_error_message(
    message: str,
    error_type: Optional[str] = None,
) -> str:
    """Convenience function to sanitize error messages.

    Example:
        >>> sanitize_error_message("Missing ANTHROPIC_API_KEY", "Configuration error")
        'Configuration error: Missing [ENV_VAR]'
    """
    return get_sanitizer().sanitize(message, error_type).sanitized_message
