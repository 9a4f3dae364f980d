"""
Agent configuration.

Settings are read from the environment (optionally seeded from a .env
file via python-dotenv).

Environment Variables:
    - CLIPDESK_PROVIDER: anthropic | claude | openai | gpt
      (default: anthropic if an Anthropic key is set, else openai if an
      OpenAI key is set, else anthropic)
    - CLIPDESK_MODEL: Model name (default: provider default)
    - ANTHROPIC_API_KEY / CLAUDE_API_KEY: Anthropic API key
    - OPENAI_API_KEY: OpenAI API key
    - CLIPDESK_BASE_URL: Custom API base URL
    - CLIPDESK_SYSTEM_PROMPT: System prompt override
    - CLIPDESK_TIMEOUT: LLM request timeout in seconds (default: 60)
    - CLIPDESK_MAX_RETRIES: SDK retry attempts (default: 3)
    - CLIPDESK_TEMPERATURE: Sampling temperature
    - CLIPDESK_MAX_TOKENS: Maximum tokens per response
    - CLIPDESK_MAX_TURNS: LLM round-trips per message (default: unbounded)
    - CLIPDESK_PARALLEL_TOOLS: Run a turn's tool calls concurrently
    - CLIPDESK_TOOL_TIMEOUT: Default per-tool timeout in seconds
    - MCP_SERVER_URL: MCP tool server base URL
    - MCP_SERVICE_API_KEY: Service key sent to the MCP server
    - CORS_ORIGINS: Comma-separated allowed origins for the HTTP API
    - LOG_LEVEL: Logging level (default: INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

from .domain.exceptions import ConfigurationError
from .orchestrator.agent import DEFAULT_SYSTEM_PROMPT, AgentConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI and HTTP entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_env(name: str, parse: Callable[[str], T], default: T) -> T:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            details={"variable": name},
            cause=e,
        )


def _parse_bool(raw: str) -> bool:
    value = raw.lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {raw}")


def _parse_positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError(f"must be at least 1: {raw}")
    return value


@dataclass
class AgentSettings:
    """Runtime settings for the agent and its hosting surfaces."""

    provider: str = "anthropic"
    model: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    base_url: Optional[str] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    timeout: float = 60.0
    max_retries: int = 3
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    max_turns: Optional[int] = None
    parallel_tool_calls: bool = False
    tool_timeout_seconds: Optional[float] = None
    mcp_server_url: Optional[str] = None
    mcp_service_api_key: Optional[str] = None
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> AgentSettings:
        """Build settings from the environment.

        Args:
            env_file: Optional .env path (default: .env in the working directory)

        Raises:
            ConfigurationError: If a numeric or boolean variable is malformed
        """
        load_dotenv(env_file)

        anthropic_key = _env("ANTHROPIC_API_KEY") or _env("CLAUDE_API_KEY")
        openai_key = _env("OPENAI_API_KEY")

        provider = _env("CLIPDESK_PROVIDER")
        if provider is None:
            provider = "openai" if openai_key and not anthropic_key else "anthropic"

        cors = _env("CORS_ORIGINS")

        return cls(
            provider=provider.lower(),
            model=_env("CLIPDESK_MODEL"),
            anthropic_api_key=anthropic_key,
            openai_api_key=openai_key,
            base_url=_env("CLIPDESK_BASE_URL"),
            system_prompt=_env("CLIPDESK_SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT,
            timeout=_parse_env("CLIPDESK_TIMEOUT", float, 60.0),
            max_retries=_parse_env("CLIPDESK_MAX_RETRIES", int, 3),
            temperature=_parse_env("CLIPDESK_TEMPERATURE", float, None),
            max_tokens=_parse_env("CLIPDESK_MAX_TOKENS", _parse_positive_int, None),
            max_turns=_parse_env("CLIPDESK_MAX_TURNS", _parse_positive_int, None),
            parallel_tool_calls=_parse_env("CLIPDESK_PARALLEL_TOOLS", _parse_bool, False),
            tool_timeout_seconds=_parse_env("CLIPDESK_TOOL_TIMEOUT", float, None),
            mcp_server_url=_env("MCP_SERVER_URL"),
            mcp_service_api_key=_env("MCP_SERVICE_API_KEY"),
            cors_origins=(
                [origin.strip() for origin in cors.split(",") if origin.strip()]
                if cors
                else ["http://localhost:3000", "http://localhost:5173"]
            ),
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )

    def api_key_for(self, provider: str) -> Optional[str]:
        """Return the API key configured for a provider discriminator."""
        if provider == "anthropic":
            return self.anthropic_api_key
        if provider == "openai":
            return self.openai_api_key
        return None

    def to_agent_config(self) -> AgentConfig:
        """Derive the orchestrator configuration."""
        return AgentConfig(
            system_prompt=self.system_prompt,
            max_turns=self.max_turns,
            parallel_tool_calls=self.parallel_tool_calls,
            tool_timeout_seconds=self.tool_timeout_seconds,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
