"""Tool collaborators for the agent.

Provides:
- ToolRegistry: in-process catalog of Python callables
- MCPClient: HTTP client for an MCP tool server
"""

from .mcp_client import MCPClient, MCPClientConfig
from .registry import RegisteredTool, ToolRegistry

__all__ = [
    "MCPClient",
    "MCPClientConfig",
    "RegisteredTool",
    "ToolRegistry",
]
