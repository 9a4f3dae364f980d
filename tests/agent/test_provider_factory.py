"""
Tests for provider selection.

The orchestrator never branches on backend names; the factory maps the
configured discriminator to an adapter class.
"""

import pytest
from unittest.mock import patch

from clipdesk.agent.config import AgentSettings
from clipdesk.agent.domain.exceptions import ConfigurationError
from clipdesk.agent.providers.anthropic import AnthropicProvider
from clipdesk.agent.providers.factory import create_provider, resolve_provider_name
from clipdesk.agent.providers.openai import OpenAIProvider


@pytest.fixture(autouse=True)
def mock_sdk_clients():
    with patch("clipdesk.agent.providers.anthropic.AsyncAnthropic"), \
            patch("clipdesk.agent.providers.openai.AsyncOpenAI"):
        yield


class TestResolveProviderName:
    """Tests for discriminator normalization."""

    @pytest.mark.parametrize("name,expected", [
        ("anthropic", "anthropic"),
        ("claude", "anthropic"),
        ("Claude", "anthropic"),
        ("openai", "openai"),
        ("gpt", "openai"),
        (" OpenAI ", "openai"),
    ])
    def test_aliases(self, name, expected):
        assert resolve_provider_name(name) == expected

    def test_unknown_provider_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_provider_name("llama")
        assert "llama" in str(exc_info.value)


class TestCreateProvider:
    """Tests for building adapters from settings."""

    def test_anthropic_with_default_model(self):
        settings = AgentSettings(provider="claude", anthropic_api_key="sk-ant-test")

        provider = create_provider(settings)

        assert isinstance(provider, AnthropicProvider)
        assert provider.model_name == AnthropicProvider.DEFAULT_MODEL
        assert provider.config.api_key == "sk-ant-test"

    def test_openai_with_model_override(self):
        settings = AgentSettings(provider="openai", openai_api_key="sk-test", model="gpt-4o")

        provider = create_provider(settings)

        assert isinstance(provider, OpenAIProvider)
        assert provider.model_name == "gpt-4o"

    def test_settings_flow_into_provider_config(self):
        settings = AgentSettings(
            provider="anthropic",
            anthropic_api_key="k",
            timeout=12.5,
            max_retries=1,
            temperature=0.3,
            max_tokens=1024,
        )

        config = create_provider(settings).config

        assert (config.timeout, config.max_retries) == (12.5, 1)
        assert (config.temperature, config.max_tokens) == (0.3, 1024)

    def test_missing_key_rejected(self):
        settings = AgentSettings(provider="openai", anthropic_api_key="only-anthropic")

        with pytest.raises(ConfigurationError):
            create_provider(settings)

    def test_unknown_provider_rejected(self):
        with pytest.raises(ConfigurationError):
            create_provider(AgentSettings(provider="gemini", anthropic_api_key="k"))
