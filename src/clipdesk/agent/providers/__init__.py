"""LLM provider implementations."""

from .aggregator import ToolCallAggregator, parse_tool_arguments
from .base import BaseLLMProvider, LLMProviderConfig
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from .factory import PROVIDERS, create_provider, resolve_provider_name

__all__ = [
    "BaseLLMProvider",
    "LLMProviderConfig",
    "ToolCallAggregator",
    "parse_tool_arguments",
    "AnthropicProvider",
    "OpenAIProvider",
    "PROVIDERS",
    "create_provider",
    "resolve_provider_name",
]
