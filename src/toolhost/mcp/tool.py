"""Adapter exposing one remote MCP tool as a local :class:`ToolHandle`."""

from __future__ import annotations

import asyncio
import enum
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from toolhost.core.errors import ToolTimeoutError
from toolhost.tools.base import ToolResult

if TYPE_CHECKING:
    from toolhost.config.schema import TransportKind

# Ten minutes, matching long-running server tools such as builds.
MCP_TOOL_DEFAULT_TIMEOUT = 10 * 60.0

_DESCRIPTION_SUFFIX = (
    "\n\nThis MCP tool named '{tool}' was discovered from the MCP server "
    "'{server}' using JSON-RPC 2.0 over the {transport} transport. When "
    "called, it invokes the `tools/call` method for tool name `{tool}` and "
    "returns the server response as a JSON block."
)


class ToolConnection(Protocol):
    """The slice of an MCP connection a discovered tool needs."""

    @property
    def transport(self) -> TransportKind: ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any: ...


def augment_description(
    description: str, *, server_name: str, server_tool_name: str, transport: str
) -> str:
    """Append the discovery note to a tool description (idempotent)."""
    suffix = _DESCRIPTION_SUFFIX.format(
        tool=server_tool_name, server=server_name, transport=transport
    )
    if description.endswith(suffix):
        return description
    return description + suffix


def _payload(result: Any) -> Any:
    """Convert an MCP result object into plain JSON-able data."""
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)
    return result


def format_result(payload: Any) -> str:
    """Render a tool payload as a fenced JSON block."""
    return "```json\n" + json.dumps(payload, indent=2, default=str) + "\n```"


class ConfirmationOutcome(enum.Enum):
    """Operator answer to an execution prompt."""

    PROCEED_ONCE = "proceed_once"
    PROCEED_ALWAYS_SERVER = "proceed_always_server"
    PROCEED_ALWAYS_TOOL = "proceed_always_tool"
    CANCEL = "cancel"


class ToolAllowlist:
    """Servers and ``server.tool`` pairs the operator approved for good."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def allows(self, server_name: str, server_tool_name: str) -> bool:
        return (
            server_name in self._keys
            or f"{server_name}.{server_tool_name}" in self._keys
        )

    def allow_server(self, server_name: str) -> None:
        self._keys.add(server_name)

    def allow_tool(self, server_name: str, server_tool_name: str) -> None:
        self._keys.add(f"{server_name}.{server_tool_name}")

    def clear(self) -> None:
        self._keys.clear()


# Shared by every discovered tool unless one is passed explicitly.
DEFAULT_ALLOWLIST = ToolAllowlist()


@dataclass(frozen=True, slots=True)
class McpToolConfirmation:
    """Details for asking the operator before a tool runs."""

    server_name: str
    server_tool_name: str
    display_name: str
    allowlist: ToolAllowlist = field(repr=False, compare=False)

    @property
    def title(self) -> str:
        return f"Confirm MCP tool execution: {self.display_name}"

    def resolve(self, outcome: ConfirmationOutcome) -> bool:
        """Record ``outcome`` and return whether the call may proceed."""
        if outcome is ConfirmationOutcome.PROCEED_ALWAYS_SERVER:
            self.allowlist.allow_server(self.server_name)
        elif outcome is ConfirmationOutcome.PROCEED_ALWAYS_TOOL:
            self.allowlist.allow_tool(self.server_name, self.server_tool_name)
        return outcome is not ConfirmationOutcome.CANCEL


class DiscoveredMcpTool:
    """A tool advertised by an MCP server, callable through its connection.

    Implements the :class:`~toolhost.tools.base.ToolHandle` protocol.
    Parameters are forwarded unvalidated; the server owns its schema.
    """

    def __init__(
        self,
        connection: ToolConnection,
        server_name: str,
        name: str,
        description: str,
        parameters_schema: dict[str, Any],
        server_tool_name: str,
        timeout: float | None = None,
        trust: bool = False,
        allowlist: ToolAllowlist | None = None,
    ) -> None:
        self._connection = connection
        self._server_name = server_name
        self._name = name
        self._base_description = description
        self._description = augment_description(
            description,
            server_name=server_name,
            server_tool_name=server_tool_name,
            transport=connection.transport.value,
        )
        self._parameters_schema = parameters_schema
        self.server_tool_name = server_tool_name
        self.timeout = timeout if timeout is not None else MCP_TOOL_DEFAULT_TIMEOUT
        self.trust = trust
        self._allowlist = allowlist if allowlist is not None else DEFAULT_ALLOWLIST

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return f"{self.server_tool_name} ({self._server_name} MCP Server)"

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return self._parameters_schema

    @property
    def server_name(self) -> str:
        return self._server_name

    @property
    def connection(self) -> ToolConnection:
        return self._connection

    def renamed(self, name: str) -> DiscoveredMcpTool:
        """Return a copy of this tool registered under another local name."""
        return DiscoveredMcpTool(
            self._connection,
            self._server_name,
            name,
            self._base_description,
            self._parameters_schema,
            self.server_tool_name,
            timeout=self.timeout,
            trust=self.trust,
            allowlist=self._allowlist,
        )

    def should_confirm_execute(self) -> McpToolConfirmation | None:
        """Return a confirmation request, or ``None`` when the call may run.

        Tools from trusted servers, and servers or tools already approved
        with an "always" answer, run without asking.
        """
        if self.trust or self._allowlist.allows(
            self._server_name, self.server_tool_name
        ):
            return None
        return McpToolConfirmation(
            server_name=self._server_name,
            server_tool_name=self.server_tool_name,
            display_name=self.display_name,
            allowlist=self._allowlist,
        )

    async def execute(self, **kwargs: Any) -> ToolResult:
        """Invoke the remote tool, bounded by :attr:`timeout`.

        Raises:
            ToolTimeoutError: If the server does not answer in time.
        """
        try:
            result = await asyncio.wait_for(
                self._connection.call_tool(self.server_tool_name, kwargs),
                timeout=self.timeout,
            )
        except TimeoutError as exc:
            raise ToolTimeoutError(
                self._server_name, self.server_tool_name, self.timeout
            ) from exc

        payload = _payload(result)
        text = format_result(payload)
        return ToolResult(llm_content=text, return_display=text, raw=payload)
