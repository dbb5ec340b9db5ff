"""MCP client: connecting to tool servers and discovering their tools.

Each :class:`McpConnection` owns one ``ClientSession`` over the transport
selected by its :class:`ToolServerConfig` (stdio subprocess, SSE stream, or
streamable HTTP). The transport context managers are entered and exited by
a dedicated owner task, so a connection opened inside one task can be
closed from any other.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import os
import re
import shlex
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import CallToolResult, Implementation, ListToolsResult

from toolhost import __version__
from toolhost.auth.google import GoogleCredentialProvider
from toolhost.config.schema import ToolServerConfig, TransportKind
from toolhost.core.errors import ConfigError, ProviderConnectionError
from toolhost.mcp.tool import DiscoveredMcpTool

if TYPE_CHECKING:
    from collections.abc import Mapping
    from contextlib import AbstractAsyncContextManager

    from toolhost.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

CLIENT_INFO = Implementation(name="toolhost-mcp-client", version=__version__)

# Model APIs reject longer function names.
MAX_TOOL_NAME_LENGTH = 63

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


class McpConnection:
    """A live session with one MCP server."""

    def __init__(self, server_name: str, config: ToolServerConfig) -> None:
        self.server_name = server_name
        self.config = config
        self._session: ClientSession | None = None
        self._ready: asyncio.Future[None] | None = None
        self._closing = asyncio.Event()
        self._runner: asyncio.Task[None] | None = None

    @property
    def transport(self) -> TransportKind:
        return self.config.transport

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            msg = f"MCP server '{self.server_name}' is not connected"
            raise RuntimeError(msg)
        return self._session

    def _open_transport(self, headers: dict[str, str]) -> AbstractAsyncContextManager[Any]:
        cfg = self.config
        if cfg.transport is TransportKind.HTTP:
            assert cfg.http_url is not None
            return streamablehttp_client(cfg.http_url, headers=headers or None)
        if cfg.transport is TransportKind.SSE:
            assert cfg.url is not None
            return sse_client(cfg.url, headers=headers or None)
        assert cfg.command is not None
        params = StdioServerParameters(
            command=cfg.command,
            args=list(cfg.args),
            env={**os.environ, **cfg.env},
            cwd=cfg.cwd,
        )
        return stdio_client(params)

    async def open(self, headers: dict[str, str] | None = None) -> None:
        """Start the owner task and wait until the session is initialized."""
        if self._runner is not None:
            msg = f"MCP server '{self.server_name}' was already opened"
            raise RuntimeError(msg)
        self._ready = asyncio.get_running_loop().create_future()
        self._runner = asyncio.create_task(
            self._run(headers or {}), name=f"mcp:{self.server_name}"
        )
        try:
            await self._ready
        except BaseException:
            self._closing.set()
            raise

    async def _run(self, headers: dict[str, str]) -> None:
        assert self._ready is not None
        try:
            async with AsyncExitStack() as stack:
                streams = await stack.enter_async_context(self._open_transport(headers))
                read_stream, write_stream = streams[0], streams[1]
                session = await stack.enter_async_context(
                    ClientSession(read_stream, write_stream, client_info=CLIENT_INFO)
                )
                await session.initialize()
                self._session = session
                if not self._ready.done():
                    self._ready.set_result(None)
                await self._closing.wait()
        except Exception as exc:
            if not self._ready.done():
                self._ready.set_exception(exc)
            else:
                logger.error("MCP ERROR (%s): %s", self.server_name, exc)
        finally:
            self._session = None
            if not self._ready.done():
                self._ready.cancel()

    async def list_tools(self) -> ListToolsResult:
        return await self.session.list_tools()

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        return await self.session.call_tool(name, arguments)

    async def close(self) -> None:
        """Shut the session down. Safe to call more than once."""
        self._closing.set()
        if self._runner is not None:
            await self._runner


async def connect_to_server(
    server_name: str,
    config: ToolServerConfig,
    *,
    credential_provider: GoogleCredentialProvider | None = None,
) -> McpConnection:
    """Open a connection to one MCP server.

    Remote transports get a bearer header when ``config.oauth`` is enabled
    (or a ``credential_provider`` is passed) and a token is available.

    Raises:
        ConfigError: If the oauth settings are incomplete.
        ProviderConnectionError: If the server cannot be started or reached.
    """
    headers = dict(config.headers)
    if config.transport is not TransportKind.STDIO:
        if credential_provider is None and config.oauth is not None and config.oauth.enabled:
            credential_provider = GoogleCredentialProvider(config)

    connection = McpConnection(server_name, config)
    try:
        if credential_provider is not None and config.transport is not TransportKind.STDIO:
            headers.update(await credential_provider.auth_headers())
        await connection.open(headers)
    except Exception as exc:
        msg = f"failed to start or connect to MCP server: {exc}"
        raise ProviderConnectionError(server_name, msg) from exc
    return connection


# ── Discovery ────────────────────────────────────────────────────


def sanitize_tool_name(name: str) -> str:
    """Make ``name`` acceptable as a model-facing function name."""
    name = _INVALID_NAME_CHARS.sub("_", name)
    if len(name) > MAX_TOOL_NAME_LENGTH:
        name = name[:28] + "___" + name[-32:]
    return name


def _strip_schema_props(schema: Any) -> Any:
    """Recursively drop ``additionalProperties`` and ``$schema`` keys."""
    if isinstance(schema, list):
        return [_strip_schema_props(item) for item in schema]
    if isinstance(schema, dict):
        return {
            key: _strip_schema_props(value)
            for key, value in schema.items()
            if key not in ("additionalProperties", "$schema")
        }
    return schema


async def discover_tools(
    server_name: str,
    config: ToolServerConfig,
    connection: McpConnection,
) -> list[DiscoveredMcpTool]:
    """List a server's tools and wrap each as a :class:`DiscoveredMcpTool`."""
    result = await connection.list_tools()
    tools: list[DiscoveredMcpTool] = []
    for tool in result.tools:
        if not tool.name:
            logger.warning(
                "MCP server '%s' advertised a tool without a name; skipping",
                server_name,
            )
            continue
        schema = _strip_schema_props(copy.deepcopy(tool.inputSchema))
        if not isinstance(schema, dict) or not schema:
            schema = {"type": "object", "properties": {}}
        tools.append(
            DiscoveredMcpTool(
                connection,
                server_name,
                sanitize_tool_name(tool.name),
                tool.description or "",
                schema,
                tool.name,
                timeout=config.timeout,
                trust=config.trust,
            )
        )
    return tools


async def _connect_and_discover(
    server_name: str, config: ToolServerConfig
) -> tuple[McpConnection, list[DiscoveredMcpTool]]:
    connection = await connect_to_server(server_name, config)
    try:
        tools = await discover_tools(server_name, config, connection)
    except BaseException:
        await connection.close()
        raise
    return connection, tools


def _server_from_command(command: str) -> ToolServerConfig:
    try:
        args = shlex.split(command)
    except ValueError as e:
        msg = f"failed to parse mcp_server_command: {command}"
        raise ConfigError(msg) from e
    if not args:
        msg = "mcp_server_command is empty"
        raise ConfigError(msg)
    return ToolServerConfig(command=args[0], args=args[1:])


async def discover_mcp_tools(
    servers: Mapping[str, ToolServerConfig],
    registry: ToolRegistry,
    *,
    server_command: str | None = None,
) -> dict[str, McpConnection]:
    """Connect to every server concurrently and register their tools.

    A server that fails to connect or list its tools is logged and
    skipped. Tools whose name is already taken are registered as
    ``<server>__<tool>``. Servers contributing no tools are disconnected.

    Returns:
        The live connections, keyed by server name.
    """
    all_servers = dict(servers)
    if server_command:
        # generic server name for the command-line server
        all_servers["mcp"] = _server_from_command(server_command)

    names = list(all_servers)
    outcomes = await asyncio.gather(
        *(_connect_and_discover(name, all_servers[name]) for name in names),
        return_exceptions=True,
    )

    connections: dict[str, McpConnection] = {}
    for name, outcome in zip(names, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            logger.error("Failed to discover tools from MCP server '%s': %s", name, outcome)
            continue
        connection, tools = outcome
        for tool in tools:
            if tool.name in registry:
                tool = tool.renamed(sanitize_tool_name(f"{name}__{tool.name}"))
            if tool.name in registry:
                logger.warning("Duplicate tool name '%s' from '%s'; skipping", tool.name, name)
                continue
            registry.register(tool)

        if not registry.get_tools_by_server(name):
            logger.info("No tools registered from MCP server '%s'. Closing connection.", name)
            await connection.close()
            continue
        connections[name] = connection

    return connections
