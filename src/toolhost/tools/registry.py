"""Tool registry: manages available tools.

Provides registration, lookup, listing, and execution of tools
that implement the :class:`ToolHandle` protocol.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from toolhost.core.errors import ToolTimeoutError
from toolhost.tools.base import ToolDefinition, ToolResult

if TYPE_CHECKING:
    from toolhost.tools.base import ToolCall, ToolHandle

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry for managing available tools.

    Supports registration, lookup by name or owning server, listing
    definitions (for passing to model APIs), and executing tool calls.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolHandle] = {}

    def register(self, tool: ToolHandle) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if tool.name in self._tools:
            msg = f"Tool already registered: {tool.name}"
            raise ValueError(msg)
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolHandle:
        """Get a tool by name.

        Raises:
            KeyError: If the tool is not found.
        """
        if name not in self._tools:
            msg = f"Tool not found: {name}"
            raise KeyError(msg)
        return self._tools[name]

    def get_tools_by_server(self, server_name: str) -> list[ToolHandle]:
        """Return every tool contributed by ``server_name``."""
        return [t for t in self._tools.values() if t.server_name == server_name]

    def list_definitions(self) -> list[ToolDefinition]:
        """Return tool definitions for all registered tools."""
        return [
            ToolDefinition(
                name=t.name,
                description=t.description,
                parameters_schema=t.parameters_schema,
            )
            for t in self._tools.values()
        ]

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        """Execute a tool call and return the result.

        The result carries ``tool_call.id``. If the tool is not found or
        execution fails, returns a :class:`ToolResult` with ``is_error=True``.
        """
        try:
            tool = self.get(tool_call.name)
        except KeyError:
            msg = f"Tool not found: {tool_call.name}"
            return ToolResult(
                llm_content=msg,
                return_display=msg,
                is_error=True,
                tool_call_id=tool_call.id,
            )
        try:
            result = await tool.execute(**tool_call.arguments)
            return replace(result, tool_call_id=tool_call.id)
        except ToolTimeoutError as exc:
            msg = f"Tool call timed out: {exc}"
        except Exception as exc:
            logger.debug("Tool %s failed", tool_call.name, exc_info=True)
            msg = f"Tool execution error: {exc}"
        return ToolResult(
            llm_content=msg,
            return_display=msg,
            is_error=True,
            tool_call_id=tool_call.id,
        )

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def list_names(self) -> list[str]:
        """Return names of all registered tools."""
        return list(self._tools.keys())
