"""Tool framework.

Provides the tool protocol, result types, and a registry into which
tools discovered on MCP servers are loaded.
"""

from toolhost.tools.base import ToolCall, ToolDefinition, ToolHandle, ToolResult
from toolhost.tools.registry import ToolRegistry

__all__ = ["ToolCall", "ToolDefinition", "ToolHandle", "ToolRegistry", "ToolResult"]
