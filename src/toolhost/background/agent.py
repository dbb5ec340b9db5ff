"""Background agent: a tool server that runs long-lived tasks.

A background agent is any MCP server exposing the task tools
``startTask``, ``getTask``, ``listTasks``, ``messageTask``,
``deleteTask`` and ``cancelTask``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from toolhost.background.types import AgentMessage, BackgroundTask, TaskList
from toolhost.core.errors import ProviderError, ToolExecutionError
from toolhost.mcp.client import connect_to_server, discover_tools

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolhost.config.schema import ToolServerConfig
    from toolhost.mcp.client import McpConnection
    from toolhost.mcp.tool import DiscoveredMcpTool

REQUIRED_TOOLS = (
    "startTask",
    "getTask",
    "listTasks",
    "messageTask",
    "deleteTask",
    "cancelTask",
)


async def load_background_agent(
    server_name: str, config: ToolServerConfig
) -> BackgroundAgent:
    """Connect to ``server_name`` and wrap it as a :class:`BackgroundAgent`.

    The connection is closed again if the server lacks the task tools.
    """
    connection = await connect_to_server(server_name, config)
    try:
        tools = await discover_tools(server_name, config, connection)
        return BackgroundAgent(server_name, tools, connection=connection)
    except BaseException:
        await connection.close()
        raise


class BackgroundAgent:
    """Client for the task tools of one background agent server."""

    def __init__(
        self,
        server_name: str,
        tools: Sequence[DiscoveredMcpTool],
        *,
        connection: McpConnection | None = None,
    ) -> None:
        self.server_name = server_name
        self._connection = connection
        by_remote_name = {t.server_tool_name: t for t in tools}
        missing = [name for name in REQUIRED_TOOLS if name not in by_remote_name]
        if missing:
            msg = f"missing expected tool: {', '.join(missing)}"
            raise ProviderError(server_name, msg)
        self._tools = by_remote_name

    @property
    def tools(self) -> list[DiscoveredMcpTool]:
        return list(self._tools.values())

    async def start_task(self, prompt: str) -> BackgroundTask:
        resp = await self._call_tool(
            "startTask",
            {"prompt": AgentMessage.user_text(prompt).model_dump(mode="json")},
        )
        return self._parse(BackgroundTask, resp)

    async def get_task(
        self, task_id: str, history_length: int | None = None
    ) -> BackgroundTask:
        params: dict[str, Any] = {"id": task_id}
        if history_length is not None:
            params["historyLength"] = history_length
        resp = await self._call_tool("getTask", params)
        return self._parse(BackgroundTask, resp)

    async def list_tasks(self) -> list[BackgroundTask]:
        resp = await self._call_tool("listTasks", {})
        return self._parse(TaskList, resp).tasks

    async def message_task(self, task_id: str, message: str) -> None:
        await self._call_tool(
            "messageTask",
            {
                "id": task_id,
                "message": AgentMessage.user_text(message).model_dump(mode="json"),
            },
        )

    async def delete_task(self, task_id: str) -> None:
        await self._call_tool("deleteTask", {"id": task_id})

    async def cancel_task(self, task_id: str) -> None:
        await self._call_tool("cancelTask", {"id": task_id})

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()

    # ── Internals ────────────────────────────────────────────────

    async def _call_tool(self, remote_name: str, params: dict[str, Any]) -> dict[str, Any]:
        tool = self._tools[remote_name]
        result = await tool.execute(**params)
        resp = result.raw
        if not isinstance(resp, dict):
            msg = f"Unexpected response from {tool.display_name}"
            raise ToolExecutionError(self.server_name, msg)
        if resp.get("isError"):
            detail = _error_text(resp) or "unknown error"
            msg = f"Error calling {tool.display_name}: {detail}"
            raise ToolExecutionError(self.server_name, msg)
        return resp

    def _parse(self, model: Any, resp: dict[str, Any]) -> Any:
        try:
            return model.model_validate(resp.get("structuredContent"))
        except ValidationError as e:
            msg = f"Malformed task response: {e}"
            raise ToolExecutionError(self.server_name, msg) from e


def _error_text(resp: dict[str, Any]) -> str:
    parts = resp.get("content") or []
    return " ".join(str(p.get("text", "")) for p in parts if isinstance(p, dict)).strip()
