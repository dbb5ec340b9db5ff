"""MCP integration: connections, discovered tools, and a demo server."""

from toolhost.mcp.client import (
    McpConnection,
    connect_to_server,
    discover_mcp_tools,
    discover_tools,
    sanitize_tool_name,
)
from toolhost.mcp.tool import MCP_TOOL_DEFAULT_TIMEOUT, DiscoveredMcpTool

__all__ = [
    "MCP_TOOL_DEFAULT_TIMEOUT",
    "DiscoveredMcpTool",
    "McpConnection",
    "connect_to_server",
    "discover_mcp_tools",
    "discover_tools",
    "sanitize_tool_name",
]
