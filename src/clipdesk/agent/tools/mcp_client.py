"""
MCP Client.

Connects to an MCP tool server (the video editing tool catalog) over its
HTTP transport for tool discovery and execution.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from ..domain.entities import ToolDefinition, ToolOutput
from ..domain.exceptions import ToolExecutionError
from ..domain.ports import IToolExecutor

logger = logging.getLogger(__name__)


@dataclass
class MCPClientConfig:
    """Configuration for MCP client."""

    # Server connection
    base_url: str = "http://localhost:8000"
    timeout: float = 30.0
    max_retries: int = 3

    # Authentication (service-to-service)
    service_api_key: Optional[str] = None


class MCPClient(IToolExecutor):
    """Client for MCP server operations.

    Usage:
        config = MCPClientConfig(base_url="http://mcp-server:8000")
        client = MCPClient(config)

        # List available tools
        tools = await client.list_tool_schemas()

        # Execute a tool
        output = await client.execute("resize_video", {"height": 480})

    Architecture:
        - Uses HTTP transport to connect to the MCP server
        - Retries connection errors and HTTP 429 with exponential backoff
        - Caches tool definitions for TOOL_CACHE_TTL_SECONDS
    """

    # Cache TTL for tool definitions
    TOOL_CACHE_TTL_SECONDS = 300

    def __init__(self, config: MCPClientConfig):
        """Initialize the MCP client.

        Args:
            config: Client configuration
        """
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None
        self._tools_cache: Optional[list[ToolDefinition]] = None
        self._tools_cache_time: float = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _get_headers(self) -> dict[str, str]:
        """Build request headers with auth."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.config.service_api_key:
            headers["X-Service-Key"] = self.config.service_api_key
        return headers

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    async def list_tool_schemas(self) -> list[ToolDefinition]:
        """List available tools from the MCP server.

        Raises:
            ToolExecutionError: If the server cannot be reached or refuses
        """
        if self._tools_cache is not None and (
            time.monotonic() - self._tools_cache_time < self.TOOL_CACHE_TTL_SECONDS
        ):
            return self._tools_cache

        session = await self._get_session()

        try:
            async with session.post(
                self._url("/mcp/v1/tools/list"),
                headers=self._get_headers(),
                json={},
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    raise ToolExecutionError(
                        f"Failed to list tools: {response.status} - {text}",
                        tool_name="list_tools",
                    )

                data = await response.json()

        except aiohttp.ClientError as e:
            raise ToolExecutionError(
                f"Failed to connect to MCP server: {e}",
                tool_name="list_tools",
                cause=e,
            )

        tools = [
            ToolDefinition(
                name=tool_data["name"],
                description=tool_data.get("description", ""),
                parameters=tool_data.get("inputSchema") or {},
            )
            for tool_data in data.get("tools", [])
        ]

        self._tools_cache = tools
        self._tools_cache_time = time.monotonic()

        logger.info(f"Discovered {len(tools)} MCP tools")
        return tools

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Execute a tool on the MCP server.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Tool execution result (parsed JSON when the text is JSON)

        Raises:
            ToolExecutionError: On execution failure
        """
        session = await self._get_session()
        url = self._url("/mcp/v1/tools/call")
        payload = {"name": name, "arguments": arguments}

        for attempt in range(self.config.max_retries):
            try:
                async with session.post(
                    url,
                    headers=self._get_headers(),
                    json=payload,
                ) as response:
                    if response.status == 200:
                        data = await response.json()
                        return self._parse_result(name, data)

                    elif response.status == 404:
                        raise ToolExecutionError(
                            f"Tool not found: {name}",
                            tool_name=name,
                            recoverable=False,
                        )

                    elif response.status == 429:
                        if attempt < self.config.max_retries - 1:
                            wait_time = 2 ** attempt
                            logger.warning(f"Rate limited, retrying in {wait_time}s")
                            await asyncio.sleep(wait_time)
                            continue

                        raise ToolExecutionError(
                            "Rate limited by MCP server",
                            tool_name=name,
                        )

                    else:
                        text = await response.text()
                        raise ToolExecutionError(
                            f"Tool execution failed: {response.status} - {text}",
                            tool_name=name,
                        )

            except aiohttp.ClientError as e:
                if attempt < self.config.max_retries - 1:
                    wait_time = 2 ** attempt
                    logger.warning(f"Connection error, retrying in {wait_time}s: {e}")
                    await asyncio.sleep(wait_time)
                    continue

                raise ToolExecutionError(
                    f"Failed to connect to MCP server: {e}",
                    tool_name=name,
                    cause=e,
                )

        raise ToolExecutionError(
            f"Tool execution failed after {self.config.max_retries} retries",
            tool_name=name,
        )

    @staticmethod
    def _parse_result(name: str, data: dict[str, Any]) -> Any:
        """Extract the payload from an MCP tools/call response."""
        content = data.get("content", [])
        texts = [
            item.get("text", "")
            for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        ]

        if data.get("isError"):
            raise ToolExecutionError(
                "\n".join(texts) or f"Tool {name} reported an error",
                tool_name=name,
            )

        if not texts:
            return content

        text = "\n".join(texts)
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        """Execute a tool, reporting failures as ``ToolOutput.error``."""
        try:
            result = await self.call_tool(name, arguments)
        except ToolExecutionError as e:
            logger.warning(f"MCP tool {name} failed: {e}")
            return ToolOutput(error=str(e))
        return ToolOutput(content=result)
