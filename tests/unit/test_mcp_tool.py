"""Tests for DiscoveredMcpTool: description, timeout and result formatting."""

from __future__ import annotations

import json

import pytest

from tests.fixtures.mcp import FakeConnection, make_tool, tool_result
from toolhost.config.schema import TransportKind
from toolhost.core.errors import ToolTimeoutError
from toolhost.mcp.tool import (
    MCP_TOOL_DEFAULT_TIMEOUT,
    ConfirmationOutcome,
    ToolAllowlist,
    augment_description,
    format_result,
)
from toolhost.tools.base import ToolHandle


class TestDescription:
    def test_mentions_tool_server_and_transport(self, fake_connection):
        tool = make_tool(fake_connection, "files", "read_file", description="Read a file.")
        assert tool.description.startswith("Read a file.")
        assert "'read_file'" in tool.description
        assert "'files'" in tool.description
        assert "stdio" in tool.description
        assert "tools/call" in tool.description

    def test_reflects_remote_transport(self):
        conn = FakeConnection(transport=TransportKind.HTTP)
        tool = make_tool(conn)
        assert "over the http transport" in tool.description

    def test_augment_is_idempotent(self):
        once = augment_description(
            "d", server_name="s", server_tool_name="t", transport="sse"
        )
        twice = augment_description(
            once, server_name="s", server_tool_name="t", transport="sse"
        )
        assert once == twice

    def test_renamed_keeps_single_suffix(self, fake_connection):
        tool = make_tool(fake_connection, "srv", "echo").renamed("srv__echo")
        assert tool.name == "srv__echo"
        assert tool.server_tool_name == "echo"
        assert tool.description.count("tools/call") == 1


class TestIdentity:
    def test_satisfies_tool_handle(self, fake_connection):
        assert isinstance(make_tool(fake_connection), ToolHandle)

    def test_display_name(self, fake_connection):
        tool = make_tool(fake_connection, "files", "read_file")
        assert tool.display_name == "read_file (files MCP Server)"
        assert tool.server_name == "files"


class TestTimeout:
    def test_default_timeout(self, fake_connection):
        assert make_tool(fake_connection).timeout == MCP_TOOL_DEFAULT_TIMEOUT == 600.0

    def test_configured_timeout(self, fake_connection):
        assert make_tool(fake_connection, timeout=5.0).timeout == 5.0

    async def test_unresponsive_server_times_out(self):
        conn = FakeConnection(hang=True)
        tool = make_tool(conn, "slow", "wait", timeout=0.05)
        with pytest.raises(ToolTimeoutError) as exc_info:
            await tool.execute()
        assert exc_info.value.provider_id == "slow"
        assert exc_info.value.tool_name == "wait"
        assert exc_info.value.timeout == 0.05

    async def test_connection_usable_after_timeout(self):
        conn = FakeConnection(hang=True)
        tool = make_tool(conn, timeout=0.05)
        with pytest.raises(ToolTimeoutError):
            await tool.execute()
        conn._hang = False
        result = await tool.execute()
        assert not result.is_error


class TestExecute:
    async def test_forwards_name_and_arguments(self):
        conn = FakeConnection({"echo": tool_result({"ok": True})})
        tool = make_tool(conn, "srv", "echo")
        await tool.execute(text="hi", count=2)
        assert conn.calls == [("echo", {"text": "hi", "count": 2})]

    async def test_renamed_tool_calls_remote_name(self, fake_connection):
        tool = make_tool(fake_connection, "srv", "echo").renamed("srv__echo")
        await tool.execute()
        assert fake_connection.calls[0][0] == "echo"

    async def test_result_is_json_block(self):
        conn = FakeConnection({"echo": tool_result({"answer": 42})})
        result = await make_tool(conn).execute()
        assert result.llm_content.startswith("```json\n")
        assert result.llm_content.endswith("\n```")
        body = json.loads(result.llm_content[len("```json\n") : -len("\n```")])
        assert body["structuredContent"] == {"answer": 42}
        assert result.return_display == result.llm_content

    async def test_raw_payload_uses_wire_names(self):
        conn = FakeConnection({"echo": tool_result({"a": 1}, is_error=True)})
        result = await make_tool(conn).execute()
        assert result.raw["isError"] is True
        assert result.raw["structuredContent"] == {"a": 1}
        assert result.raw["content"][0]["type"] == "text"

    async def test_connection_errors_propagate(self):
        conn = FakeConnection(error=RuntimeError("pipe closed"))
        with pytest.raises(RuntimeError, match="pipe closed"):
            await make_tool(conn).execute()


class TestConfirmation:
    def test_untrusted_tool_asks(self, fake_connection):
        confirmation = make_tool(fake_connection, "files", "read").should_confirm_execute()
        assert confirmation is not None
        assert confirmation.server_name == "files"
        assert confirmation.server_tool_name == "read"
        assert "read (files MCP Server)" in confirmation.title

    def test_trusted_server_skips(self, fake_connection):
        tool = make_tool(fake_connection, "files", "read", trust=True)
        assert tool.should_confirm_execute() is None

    def test_proceed_once_asks_again(self, fake_connection):
        tool = make_tool(fake_connection, "files", "read")
        assert tool.should_confirm_execute().resolve(ConfirmationOutcome.PROCEED_ONCE)
        assert tool.should_confirm_execute() is not None

    def test_cancel_refuses(self, fake_connection):
        tool = make_tool(fake_connection, "files", "read")
        assert not tool.should_confirm_execute().resolve(ConfirmationOutcome.CANCEL)
        assert tool.should_confirm_execute() is not None

    def test_always_tool_covers_only_that_tool(self, fake_connection):
        allowlist = ToolAllowlist()
        read = make_tool(fake_connection, "files", "read", allowlist=allowlist)
        write = make_tool(fake_connection, "files", "write", allowlist=allowlist)
        read.should_confirm_execute().resolve(ConfirmationOutcome.PROCEED_ALWAYS_TOOL)
        assert read.should_confirm_execute() is None
        assert write.should_confirm_execute() is not None

    def test_always_server_covers_every_tool(self, fake_connection):
        allowlist = ToolAllowlist()
        read = make_tool(fake_connection, "files", "read", allowlist=allowlist)
        write = make_tool(fake_connection, "files", "write", allowlist=allowlist)
        other = make_tool(fake_connection, "web", "read", allowlist=allowlist)
        read.should_confirm_execute().resolve(ConfirmationOutcome.PROCEED_ALWAYS_SERVER)
        assert write.should_confirm_execute() is None
        assert other.should_confirm_execute() is not None

    def test_renamed_shares_allowlist(self, fake_connection):
        allowlist = ToolAllowlist()
        tool = make_tool(fake_connection, "files", "read", allowlist=allowlist)
        tool.should_confirm_execute().resolve(ConfirmationOutcome.PROCEED_ALWAYS_TOOL)
        assert tool.renamed("files__read").should_confirm_execute() is None


class TestFormatResult:
    def test_plain_dict(self):
        assert format_result({"a": 1}) == '```json\n{\n  "a": 1\n}\n```'
