"""Shared test fixtures for toolhost."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from pathlib import Path

    from tests.fixtures.mcp import FakeConnection as FakeConnectionType


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run with no user/project config files and no toolhost env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for var in (
        "TOOLHOST_CONFIG",
        "XDG_CONFIG_HOME",
        "GOOGLE_CLOUD_PROJECT",
        "CODE_ASSIST_ENDPOINT",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def make_server_config() -> Any:
    """Factory fixture for ToolServerConfig with a stdio default."""
    from toolhost.config.schema import ToolServerConfig

    def _make(**overrides: Any) -> ToolServerConfig:
        defaults: dict[str, Any] = {"command": "fake-server"}
        defaults.update(overrides)
        return ToolServerConfig(**defaults)

    return _make


@pytest.fixture
def fake_connection() -> FakeConnectionType:
    """Connection that answers every tool call with empty structured content."""
    from tests.fixtures.mcp import FakeConnection

    return FakeConnection()
