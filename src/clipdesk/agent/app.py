"""
FastAPI application for the editing agent.

Run with:
    uvicorn clipdesk.agent.app:create_app --factory --reload

or via the CLI:
    python main.py --serve
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .api import create_agent_dependencies, router as agent_router
from .config import AgentSettings
from .domain.ports import IToolExecutor
from .orchestrator import AgentOrchestrator
from .providers import create_provider
from .tools import MCPClient, MCPClientConfig, ToolRegistry

logger = logging.getLogger(__name__)


def create_tool_collaborator(settings: AgentSettings) -> IToolExecutor:
    """Select the tool collaborator for the configured environment."""
    if settings.mcp_server_url:
        logger.info(f"Using MCP tool server at {settings.mcp_server_url}")
        return MCPClient(
            MCPClientConfig(
                base_url=settings.mcp_server_url,
                service_api_key=settings.mcp_service_api_key,
            )
        )

    logger.warning("MCP_SERVER_URL not configured - agent will run without tools")
    return ToolRegistry()


def build_orchestrator(settings: AgentSettings) -> AgentOrchestrator:
    """Wire provider, tool collaborator and orchestrator together.

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    llm_provider = create_provider(settings)
    tools = create_tool_collaborator(settings)
    return AgentOrchestrator(
        llm_provider=llm_provider,
        tool_collaborator=tools,
        config=settings.to_agent_config(),
    )


def create_app(settings: Optional[AgentSettings] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Agent settings (default: read from the environment)
    """
    settings = settings or AgentSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager.

        - Startup: Build the LLM provider, tool collaborator and orchestrator
        - Shutdown: Cancel any in-flight request and close clients
        """
        logger.info("Starting editing agent API...")

        orchestrator = build_orchestrator(settings)
        create_agent_dependencies(orchestrator)
        logger.info(
            f"Agent ready ({orchestrator.llm.provider_name}/{orchestrator.llm.model_name})"
        )

        yield

        logger.info("Shutting down editing agent API...")
        create_agent_dependencies(None)

        await orchestrator.close()

        collaborator = orchestrator.tools.collaborator
        if isinstance(collaborator, MCPClient):
            await collaborator.close()
            logger.info("MCP client closed")

        await orchestrator.llm.close()
        logger.info("LLM provider closed")

    app = FastAPI(
        title="Clipdesk Editing Agent API",
        description="""
        Natural-language video editing agent.

        ## Endpoints

        - **POST /api/agent/chat**: Send a message, stream events as NDJSON
        - **GET /api/agent/history**: Read the conversation
        - **DELETE /api/agent/history**: Clear the conversation
        - **POST /api/agent/cancel**: Cancel the in-flight request
        """,
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    app.include_router(agent_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
