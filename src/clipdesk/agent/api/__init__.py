"""Agent API module.

Provides FastAPI router for the editing agent.
"""

from .router import create_agent_dependencies, get_orchestrator, router

__all__ = [
    "router",
    "create_agent_dependencies",
    "get_orchestrator",
]
