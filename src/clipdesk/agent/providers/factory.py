"""
Provider selection.

Maps a provider discriminator from configuration to the adapter class
that implements it, so the orchestrator never branches on backend names.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..domain.exceptions import ConfigurationError
from .anthropic import AnthropicProvider
from .base import BaseLLMProvider, LLMProviderConfig
from .openai import OpenAIProvider

if TYPE_CHECKING:
    from ..config import AgentSettings

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, type[BaseLLMProvider]] = {
    AnthropicProvider.PROVIDER_NAME: AnthropicProvider,
    OpenAIProvider.PROVIDER_NAME: OpenAIProvider,
}

# Alternate names accepted in configuration
PROVIDER_ALIASES = {
    "claude": AnthropicProvider.PROVIDER_NAME,
    "gpt": OpenAIProvider.PROVIDER_NAME,
}


def resolve_provider_name(name: str) -> str:
    """Normalize a configured provider name to its discriminator.

    Raises:
        ConfigurationError: If the name matches no registered provider
    """
    key = (name or "").strip().lower()
    key = PROVIDER_ALIASES.get(key, key)
    if key not in PROVIDERS:
        raise ConfigurationError(
            f"Unsupported LLM provider: {name!r}",
            details={"supported": sorted(PROVIDERS) + sorted(PROVIDER_ALIASES)},
        )
    return key


def create_provider(settings: AgentSettings) -> BaseLLMProvider:
    """Build the backend adapter selected by ``settings.provider``.

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    name = resolve_provider_name(settings.provider)
    provider_cls = PROVIDERS[name]

    config = LLMProviderConfig(
        api_key=settings.api_key_for(name) or "",
        model=settings.model or provider_cls.DEFAULT_MODEL,
        base_url=settings.base_url,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )

    provider = provider_cls(config)
    logger.info(f"Using LLM provider {name} with model {config.model}")
    return provider
