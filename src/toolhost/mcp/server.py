"""Demo background agent: an in-memory task server over MCP stdio.

Exposes the six task tools a :class:`~toolhost.background.agent.BackgroundAgent`
requires. Run it with ``python -m toolhost.mcp.server`` and point a
``[background_agents.<name>]`` config entry at that command.
"""

from __future__ import annotations

import uuid
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool

from toolhost.background.types import (
    AgentMessage,
    BackgroundTask,
    TaskList,
    TaskState,
    TaskStatus,
)

server = Server("demo-background-agent")

_MESSAGE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "role": {"type": "string", "enum": ["user", "agent"]},
        "parts": {"type": "array", "items": {"type": "object"}},
    },
    "required": ["role", "parts"],
}

_ID_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"id": {"type": "string"}},
    "required": ["id"],
}


class TaskStore:
    """In-memory task table backing the demo server."""

    def __init__(self) -> None:
        self._tasks: dict[str, BackgroundTask] = {}

    def _get(self, task_id: str) -> BackgroundTask:
        task = self._tasks.get(task_id)
        if task is None:
            msg = "No such task"
            raise ValueError(msg)
        return task

    def start(self, prompt: AgentMessage) -> BackgroundTask:
        task = BackgroundTask(
            id=str(uuid.uuid4()),
            status=TaskStatus(state=TaskState.SUBMITTED, message=prompt),
            history=[],
        )
        self._tasks[task.id] = task
        return task

    def get(self, task_id: str, history_length: int | None = None) -> BackgroundTask:
        task = self._get(task_id)
        if history_length is None or task.history is None:
            return task
        history = task.history[-history_length:] if history_length > 0 else []
        return task.model_copy(update={"history": history})

    def list(self) -> list[BackgroundTask]:
        return list(self._tasks.values())

    def message(self, task_id: str, message: AgentMessage) -> None:
        task = self._get(task_id)
        if task.history is None:
            task.history = []
        task.history.append(message)
        task.status = TaskStatus(state=TaskState.WORKING, message=message)

    def delete(self, task_id: str) -> None:
        self._get(task_id)
        del self._tasks[task_id]

    def cancel(self, task_id: str) -> None:
        task = self._get(task_id)
        task.status = TaskStatus(state=TaskState.CANCELED, message=task.status.message)


store = TaskStore()


def _get_tools() -> list[Tool]:
    """Define the MCP tools."""
    return [
        Tool(
            name="startTask",
            description="Launches a new task asynchronously.",
            inputSchema={
                "type": "object",
                "properties": {"prompt": _MESSAGE_SCHEMA},
                "required": ["prompt"],
            },
        ),
        Tool(
            name="getTask",
            description="Get a task and, optionally, its recent history.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "historyLength": {"type": "integer", "minimum": 0},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="listTasks",
            description="Lists tasks.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="messageTask",
            description="Send a message to a task.",
            inputSchema={
                "type": "object",
                "properties": {"id": {"type": "string"}, "message": _MESSAGE_SCHEMA},
                "required": ["id", "message"],
            },
        ),
        Tool(name="deleteTask", description="Delete a task.", inputSchema=_ID_SCHEMA),
        Tool(name="cancelTask", description="Cancels a task.", inputSchema=_ID_SCHEMA),
    ]


@server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
async def list_tools() -> list[Tool]:
    """List available MCP tools."""
    return _get_tools()


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Handle tool calls.

    Raised exceptions are reported to the client as ``isError`` results.
    """
    return handle_call(store, name, arguments)


def handle_call(tasks: TaskStore, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Dispatch one tool call against ``tasks``; returns structured content."""
    if name == "startTask":
        task = tasks.start(AgentMessage.model_validate(arguments["prompt"]))
        return task.model_dump(mode="json", exclude_none=True)
    if name == "getTask":
        task = tasks.get(arguments["id"], arguments.get("historyLength"))
        return task.model_dump(mode="json", exclude_none=True)
    if name == "listTasks":
        return TaskList(tasks=tasks.list()).model_dump(mode="json", exclude_none=True)
    if name == "messageTask":
        tasks.message(arguments["id"], AgentMessage.model_validate(arguments["message"]))
        return {}
    if name == "deleteTask":
        tasks.delete(arguments["id"])
        return {"result": "Task deleted"}
    if name == "cancelTask":
        tasks.cancel(arguments["id"])
        return {"result": "Task cancelled"}
    msg = f"Unknown tool: {name}"
    raise ValueError(msg)


async def run_server() -> None:
    """Run the MCP server over stdio."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


if __name__ == "__main__":
    import asyncio

    asyncio.run(run_server())
