"""Main CLI application.

Click commands for toolhost: tools, call, bg, setup.
"""

from __future__ import annotations

import asyncio
import json as json_mod
import logging
import sys
from typing import TYPE_CHECKING, Any

import click
from mcp.shared.exceptions import McpError

from toolhost import __version__
from toolhost.config.loader import load_config
from toolhost.core.errors import ConfigError, ToolhostError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from toolhost.background.agent import BackgroundAgent
    from toolhost.config.schema import ToolhostConfig
    from toolhost.mcp.client import McpConnection
    from toolhost.tools.registry import ToolRegistry

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> ToolhostConfig:
    """Load config with user-friendly error handling."""
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy


def _configure_logging(config: ToolhostConfig, verbose: bool) -> None:
    """Apply the ``[logging]`` section; ``--verbose`` forces DEBUG."""
    level_name = "DEBUG" if verbose else config.logging.level.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        _error(f"Unknown log level: {config.logging.level}")
    logging.basicConfig(
        level=level,
        format=_LOG_FORMAT,
        filename=config.logging.file or None,
    )


def _setup(ctx: click.Context) -> ToolhostConfig:
    config = _load_config(ctx.obj["config_path"])
    _configure_logging(config, ctx.obj["verbose"])
    return config


async def _discover(
    config: ToolhostConfig,
) -> tuple[ToolRegistry, dict[str, McpConnection]]:
    """Connect to every configured MCP server and register its tools."""
    from toolhost.mcp.client import discover_mcp_tools
    from toolhost.tools.registry import ToolRegistry

    registry = ToolRegistry()
    connections = await discover_mcp_tools(
        config.mcp_servers,
        registry,
        server_command=config.mcp_server_command,
    )
    return registry, connections


async def _close_all(connections: dict[str, McpConnection]) -> None:
    await asyncio.gather(*(c.close() for c in connections.values()))


# ── CLI group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="toolhost")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """toolhost - Tool provider host for agentic CLIs.

    Connect to MCP tool servers, drive background agents and onboard
    against the Code Assist backend.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── tools ────────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """Discover and list tools from configured MCP servers."""
    config = _setup(ctx)
    try:
        asyncio.run(_tools_async(config))
    except ToolhostError as e:
        _error(str(e))


async def _tools_async(config: ToolhostConfig) -> None:
    """Async implementation for the tools command."""
    from toolhost.cli.display import ToolhostDisplay

    if not config.mcp_servers and not config.mcp_server_command:
        click.echo("No MCP servers configured.")
        click.echo(
            "Add [mcp_servers.<name>] entries to ~/.config/toolhost/config.toml."
        )
        return

    registry, connections = await _discover(config)
    try:
        ToolhostDisplay().show_tools(
            [registry.get(name) for name in registry.list_names()],
            config.mcp_servers,
        )
    finally:
        await _close_all(connections)


# ── call ─────────────────────────────────────────────────────────


@cli.command()
@click.argument("server")
@click.argument("tool")
@click.option(
    "--args",
    "args_json",
    default="{}",
    help="Tool arguments as a JSON object.",
)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Run without asking, even if the server is not trusted.",
)
@click.pass_context
def call(
    ctx: click.Context, server: str, tool: str, args_json: str, yes: bool
) -> None:
    """Call TOOL on the MCP server SERVER."""
    config = _setup(ctx)
    try:
        arguments = json_mod.loads(args_json)
    except json_mod.JSONDecodeError as e:
        _error(f"--args is not valid JSON: {e}")
        return
    if not isinstance(arguments, dict):
        _error("--args must be a JSON object")
        return
    if server not in config.mcp_servers:
        _error(f"Unknown MCP server: {server}")
        return
    try:
        output = asyncio.run(_call_async(config, server, tool, arguments, yes=yes))
    except (ToolhostError, McpError) as e:
        _error(str(e))
        return
    click.echo(output)


async def _call_async(
    config: ToolhostConfig,
    server: str,
    tool: str,
    arguments: dict[str, Any],
    *,
    yes: bool = False,
) -> str:
    """Async implementation for the call command."""
    from toolhost.mcp.client import connect_to_server, discover_tools

    server_config = config.mcp_servers[server]
    connection = await connect_to_server(server, server_config)
    try:
        discovered = await discover_tools(server, server_config, connection)
        match = next(
            (t for t in discovered if tool in (t.server_tool_name, t.name)),
            None,
        )
        if match is None:
            msg = f"Tool '{tool}' not found on server '{server}'"
            raise ToolhostError(msg)
        confirmation = None if yes else match.should_confirm_execute()
        if confirmation is not None:
            from toolhost.mcp.tool import ConfirmationOutcome

            approved = click.confirm(f"{confirmation.title}. Proceed?", default=False)
            outcome = (
                ConfirmationOutcome.PROCEED_ONCE
                if approved
                else ConfirmationOutcome.CANCEL
            )
            if not confirmation.resolve(outcome):
                msg = f"Call to '{tool}' cancelled"
                raise ToolhostError(msg)
        result = await match.execute(**arguments)
    finally:
        await connection.close()
    return result.llm_content


# ── bg ───────────────────────────────────────────────────────────


@cli.group()
@click.option(
    "--agent",
    "agent_name",
    default=None,
    help="Background agent to use (default: first configured).",
)
@click.pass_context
def bg(ctx: click.Context, agent_name: str | None) -> None:
    """Manage tasks on background agents."""
    ctx.obj["agent_name"] = agent_name


def _run_bg(
    ctx: click.Context, action: Callable[[BackgroundAgent], Awaitable[Any]]
) -> Any:
    config = _setup(ctx)
    if not config.background_agents:
        _error("No background agents configured.")
    try:
        return asyncio.run(_with_agent(config, ctx.obj["agent_name"], action))
    except (ToolhostError, McpError) as e:
        _error(str(e))


async def _with_agent(
    config: ToolhostConfig,
    agent_name: str | None,
    action: Callable[[BackgroundAgent], Awaitable[Any]],
) -> Any:
    """Load background agents, pick one, run ``action`` on it."""
    from toolhost.background.manager import BackgroundAgentManager

    manager = BackgroundAgentManager(config.background_agents)
    await manager.load()
    try:
        if agent_name is not None:
            manager.set_active_agent_by_name(agent_name)
        agent = manager.active_agent
        if agent is None:
            which = f"'{agent_name}'" if agent_name else "any background agent"
            msg = f"Could not load {which}"
            raise ToolhostError(msg)
        return await action(agent)
    finally:
        await manager.close()


@bg.command("list")
@click.pass_context
def bg_list(ctx: click.Context) -> None:
    """List tasks on the active background agent."""
    from toolhost.cli.display import ToolhostDisplay

    tasks = _run_bg(ctx, lambda agent: agent.list_tasks())
    ToolhostDisplay().show_tasks(tasks)


@bg.command("start")
@click.argument("prompt")
@click.pass_context
def bg_start(ctx: click.Context, prompt: str) -> None:
    """Start a new task from PROMPT."""
    from toolhost.cli.display import ToolhostDisplay

    task = _run_bg(ctx, lambda agent: agent.start_task(prompt))
    ToolhostDisplay().show_task(task)


@bg.command("get")
@click.argument("task_id")
@click.pass_context
def bg_get(ctx: click.Context, task_id: str) -> None:
    """Show the status of TASK_ID."""
    from toolhost.cli.display import ToolhostDisplay

    task = _run_bg(ctx, lambda agent: agent.get_task(task_id, 0))
    ToolhostDisplay().show_task(task)


@bg.command("logs")
@click.argument("task_id")
@click.option(
    "--history",
    "history_length",
    type=int,
    default=None,
    help="Only show the last N messages.",
)
@click.pass_context
def bg_logs(ctx: click.Context, task_id: str, history_length: int | None) -> None:
    """Show the message history of TASK_ID."""
    from toolhost.cli.display import ToolhostDisplay

    task = _run_bg(ctx, lambda agent: agent.get_task(task_id, history_length))
    ToolhostDisplay().show_history(task)


@bg.command("message")
@click.argument("task_id")
@click.argument("message")
@click.pass_context
def bg_message(ctx: click.Context, task_id: str, message: str) -> None:
    """Send MESSAGE to TASK_ID."""
    _run_bg(ctx, lambda agent: agent.message_task(task_id, message))
    click.echo(f"Sent message to {task_id}.")


@bg.command("stop")
@click.argument("task_id")
@click.pass_context
def bg_stop(ctx: click.Context, task_id: str) -> None:
    """Cancel TASK_ID."""
    _run_bg(ctx, lambda agent: agent.cancel_task(task_id))
    click.echo(f"Cancelled {task_id}.")


@bg.command("delete")
@click.argument("task_id")
@click.pass_context
def bg_delete(ctx: click.Context, task_id: str) -> None:
    """Delete TASK_ID."""
    _run_bg(ctx, lambda agent: agent.delete_task(task_id))
    click.echo(f"Deleted {task_id}.")


# ── setup ────────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--project",
    default=None,
    help="Cloud project to onboard into (overrides config and env).",
)
@click.pass_context
def setup(ctx: click.Context, project: str | None) -> None:
    """Onboard the current Google account and resolve its project."""
    from toolhost.cli.display import ToolhostDisplay

    config = _setup(ctx)
    try:
        user = asyncio.run(_setup_async(config, project))
    except ToolhostError as e:
        _error(str(e))
        return
    ToolhostDisplay().show_user_data(user)


async def _setup_async(config: ToolhostConfig, project: str | None) -> Any:
    """Async implementation for the setup command."""
    from toolhost.auth.google import GoogleCredentialProvider
    from toolhost.config.schema import OAuthConfig
    from toolhost.onboarding.server import CodeAssistServer
    from toolhost.onboarding.setup import setup_user

    onboarding = config.onboarding
    credentials = GoogleCredentialProvider(
        OAuthConfig(enabled=True, scopes=onboarding.scopes)
    )
    async with CodeAssistServer(
        credential_provider=credentials,
        endpoint=onboarding.endpoint,
        api_version=onboarding.api_version,
    ) as server:
        return await setup_user(
            server,
            project_override=project or onboarding.project_override,
            poll_interval=onboarding.poll_interval,
            max_poll_attempts=onboarding.max_poll_attempts,
        )
