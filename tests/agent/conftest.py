"""Shared fixtures for agent tests."""

from typing import Any, Callable, Optional

import pytest

from clipdesk.agent.orchestrator import AgentConfig, AgentOrchestrator

from fakes import FakeToolCollaborator, ScriptedProvider


@pytest.fixture
def make_orchestrator():
    """Build an orchestrator around scripted turns and tool handlers."""

    def _make(
        turns: list[list[Any]],
        handlers: Optional[dict[str, Callable[..., Any]]] = None,
        **config: Any,
    ) -> tuple[AgentOrchestrator, ScriptedProvider, FakeToolCollaborator]:
        provider = ScriptedProvider(turns)
        tools = FakeToolCollaborator(handlers)
        orchestrator = AgentOrchestrator(
            llm_provider=provider,
            tool_collaborator=tools,
            config=AgentConfig(system_prompt="You are a video editing assistant.", **config),
        )
        return orchestrator, provider, tools

    return _make
