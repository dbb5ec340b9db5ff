"""Rich display for tools, background tasks and onboarding results.

Accepts an optional :class:`~rich.console.Console` for dependency
injection in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from toolhost.background.types import TaskState

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from toolhost.background.types import BackgroundTask
    from toolhost.config.schema import ToolServerConfig
    from toolhost.onboarding.setup import UserData
    from toolhost.tools.base import ToolHandle

_TRUNCATE_LEN = 80

_STATE_STYLES = {
    TaskState.SUBMITTED: "cyan",
    TaskState.WORKING: "bold cyan",
    TaskState.INPUT_REQUIRED: "bold yellow",
    TaskState.COMPLETED: "green",
    TaskState.CANCELED: "dim",
    TaskState.FAILED: "bold red",
}


def _truncate(text: str, limit: int = _TRUNCATE_LEN) -> str:
    """Truncate text to *limit* characters with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + " ..."


def _first_line(text: str) -> str:
    return text.strip().splitlines()[0] if text.strip() else ""


class ToolhostDisplay:
    """Console rendering for CLI commands."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    # ── Tools ─────────────────────────────────────────────────

    def show_tools(
        self,
        tools: Sequence[ToolHandle],
        servers: Mapping[str, ToolServerConfig] | None = None,
    ) -> None:
        """Table of discovered tools, grouped by server.

        Servers in ``servers`` that carry a ``description`` are listed
        under the table.
        """
        if not tools:
            self._console.print("No tools discovered.")
            return
        table = Table(title="MCP tools")
        table.add_column("Name", style="bold")
        table.add_column("Server")
        table.add_column("Description")
        for tool in sorted(tools, key=lambda t: (t.server_name, t.name)):
            table.add_row(
                tool.name,
                tool.server_name,
                _truncate(_first_line(tool.description)),
            )
        self._console.print(table)
        shown = {t.server_name for t in tools}
        for name, server in sorted((servers or {}).items()):
            if name in shown and server.description:
                self._console.print(Text(f"{name}: {server.description}", style="dim"))

    # ── Background tasks ──────────────────────────────────────

    def _state(self, task: BackgroundTask) -> Text:
        state = task.status.state
        return Text(state.value, style=_STATE_STYLES.get(state, ""))

    def show_tasks(self, tasks: Sequence[BackgroundTask]) -> None:
        if not tasks:
            self._console.print("No tasks.")
            return
        table = Table()
        table.add_column("ID", style="bold")
        table.add_column("State")
        table.add_column("Status message")
        for task in tasks:
            message = task.status.message.text() if task.status.message else ""
            table.add_row(task.id, self._state(task), _truncate(message))
        self._console.print(table)

    def show_task(self, task: BackgroundTask) -> None:
        """Single-task summary panel."""
        body = Text.assemble("State: ", self._state(task))
        if task.status.message is not None:
            body.append("\n")
            body.append(task.status.message.text())
        self._console.print(
            Panel(body, title=f"[bold]Task {task.id}[/bold]", border_style="cyan")
        )

    def show_history(self, task: BackgroundTask) -> None:
        """Print the message history of a task, oldest first."""
        history = task.history or []
        if not history:
            self._console.print(f"No history for task {task.id}.")
            return
        for message in history:
            style = "bold green" if message.role == "user" else "bold blue"
            self._console.print(Text(f"{message.role}:", style=style))
            self._console.print(message.text())
        self._console.print(Text.assemble("State: ", self._state(task)))

    # ── Onboarding ────────────────────────────────────────────

    def show_user_data(self, user: UserData) -> None:
        check = "[bold green]\u2713[/bold green]"
        self._console.print(f"{check} Onboarded")
        self._console.print(f"  Tier:    {user.user_tier}")
        self._console.print(f"  Project: {user.project_id or '(none)'}")
