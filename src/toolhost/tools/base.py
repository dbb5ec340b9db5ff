"""Tool protocol and data types.

Defines the ``ToolHandle`` protocol that every locally invocable tool
satisfies, plus data classes for tool calls, results, and definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Schema definition for a tool, suitable for passing to a model."""

    name: str
    description: str
    parameters_schema: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool invocation requested by a model or an operator."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Result from executing a tool.

    ``llm_content`` is fed back into the conversation; ``return_display``
    is shown to the operator. ``tool_call_id`` echoes the
    :class:`ToolCall` the result answers.
    """

    llm_content: str
    return_display: str
    is_error: bool = False
    tool_call_id: str = ""
    raw: Any = field(default=None, repr=False, compare=False)


@runtime_checkable
class ToolHandle(Protocol):
    """Protocol that all tool implementations must satisfy."""

    @property
    def name(self) -> str:
        """Unique name for this tool, as exposed to the model."""
        ...

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        ...

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """JSON Schema for the tool's parameters."""
        ...

    @property
    def server_name(self) -> str:
        """Name of the tool server that owns this tool."""
        ...

    async def execute(self, **kwargs: Any) -> ToolResult:
        """Execute the tool with the given arguments.

        Raises:
            Exception: On execution failure.
        """
        ...
