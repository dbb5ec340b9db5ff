"""Tests for configuration loading and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from toolhost.config.loader import expand_env_vars, load_config, merge_layers
from toolhost.config.schema import (
    DEFAULT_CODE_ASSIST_ENDPOINT,
    LoggingConfig,
    OnboardingConfig,
    ToolhostConfig,
    ToolServerConfig,
    TransportKind,
)
from toolhost.core.errors import ConfigError

# ─── Schema Defaults ──────────────────────────────────────────


class TestSchemaDefaults:
    def test_toolhost_config_all_defaults(self):
        cfg = ToolhostConfig()
        assert cfg.mcp_servers == {}
        assert cfg.mcp_server_command is None
        assert cfg.background_agents == {}
        assert cfg.onboarding.endpoint == DEFAULT_CODE_ASSIST_ENDPOINT
        assert cfg.logging.level == "WARNING"

    def test_onboarding_defaults(self):
        cfg = OnboardingConfig()
        assert cfg.api_version == "v1internal"
        assert cfg.project_override is None
        assert cfg.poll_interval == 5.0
        assert cfg.max_poll_attempts == 60
        assert "https://www.googleapis.com/auth/cloud-platform" in cfg.scopes

    def test_logging_config_defaults(self):
        cfg = LoggingConfig()
        assert cfg.level == "WARNING"
        assert cfg.file == ""


# ─── Tool server entries ──────────────────────────────────────


class TestToolServerConfig:
    def test_stdio_transport(self):
        cfg = ToolServerConfig(command="npx", args=["-y", "server"])
        assert cfg.transport is TransportKind.STDIO
        assert cfg.timeout is None
        assert cfg.trust is False

    def test_sse_transport(self):
        cfg = ToolServerConfig(url="http://localhost:8080/sse")
        assert cfg.transport is TransportKind.SSE

    def test_http_url_wins_over_url_and_command(self):
        cfg = ToolServerConfig(
            command="x", url="http://a/sse", http_url="http://a/mcp"
        )
        assert cfg.transport is TransportKind.HTTP

    def test_requires_a_target(self):
        with pytest.raises(ValidationError, match="required"):
            ToolServerConfig()

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            ToolServerConfig(command="x", timeout=0)

    def test_oauth_section(self):
        cfg = ToolServerConfig(
            http_url="https://tools.example.com/mcp",
            oauth={"enabled": True, "scopes": ["a", "b"]},
        )
        assert cfg.oauth is not None
        assert cfg.oauth.enabled is True
        assert cfg.oauth.scopes == ["a", "b"]

    def test_max_poll_attempts_may_be_unbounded(self):
        assert OnboardingConfig(max_poll_attempts=None).max_poll_attempts is None

    def test_max_poll_attempts_at_least_one(self):
        with pytest.raises(ValidationError):
            OnboardingConfig(max_poll_attempts=0)


# ─── Layer Merge ──────────────────────────────────────────────


class TestMergeLayers:
    def test_nested_merge(self):
        base = {"a": {"x": 1, "y": 2}}
        result = merge_layers(base, {"a": {"y": 3}})
        assert result == {"a": {"x": 1, "y": 3}}

    def test_override_replaces_non_dict(self):
        result = merge_layers({"a": [1, 2]}, {"a": [3]})
        assert result == {"a": [3]}

    def test_base_unchanged(self):
        base = {"a": {"x": 1}}
        merge_layers(base, {"a": {"x": 2}})
        assert base == {"a": {"x": 1}}


# ─── Loading ──────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults_when_no_files(self, clean_env):
        cfg = load_config()
        assert cfg.mcp_servers == {}
        assert cfg.onboarding.project_override is None

    def test_load_from_explicit_path(self, clean_env):
        toml_file = clean_env / "test.toml"
        toml_file.write_text(
            "[mcp_servers.files]\n"
            'command = "fs-server"\n'
            'args = ["--root", "/tmp"]\n'
            "timeout = 30\n"
            "\n"
            "[background_agents.demo]\n"
            'command = "python"\n'
            'args = ["-m", "toolhost.mcp.server"]\n'
        )
        cfg = load_config(path=toml_file)
        assert cfg.mcp_servers["files"].command == "fs-server"
        assert cfg.mcp_servers["files"].args == ["--root", "/tmp"]
        assert cfg.mcp_servers["files"].timeout == 30
        assert cfg.background_agents["demo"].transport is TransportKind.STDIO

    def test_config_order_preserved(self, clean_env):
        toml_file = clean_env / "test.toml"
        toml_file.write_text(
            '[background_agents.zeta]\ncommand = "z"\n'
            '[background_agents.alpha]\ncommand = "a"\n'
        )
        cfg = load_config(path=toml_file)
        assert list(cfg.background_agents) == ["zeta", "alpha"]

    def test_explicit_path_not_found_raises(self, clean_env):
        with pytest.raises(ConfigError, match="not found"):
            load_config(path=clean_env / "nonexistent.toml")

    def test_invalid_toml_raises(self, clean_env):
        bad = clean_env / "bad.toml"
        bad.write_text("[invalid\n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path=bad)

    def test_validation_failure_raises_config_error(self, clean_env):
        bad = clean_env / "bad.toml"
        bad.write_text("[mcp_servers.broken]\ntrust = true\n")
        with pytest.raises(ConfigError, match="validation failed") as exc_info:
            load_config(path=bad)
        assert "bad.toml" in str(exc_info.value)

    def test_overrides_beat_file(self, clean_env):
        toml_file = clean_env / "test.toml"
        toml_file.write_text("[onboarding]\npoll_interval = 2.0\n")
        cfg = load_config(
            path=toml_file, overrides={"onboarding": {"poll_interval": 0.5}}
        )
        assert cfg.onboarding.poll_interval == 0.5

    def test_project_local_config(self, clean_env):
        (clean_env / "toolhost.toml").write_text('[logging]\nlevel = "DEBUG"\n')
        cfg = load_config()
        assert cfg.logging.level == "DEBUG"

    def test_env_path(self, clean_env, monkeypatch):
        toml_file = clean_env / "env.toml"
        toml_file.write_text('mcp_server_command = "srv --stdio"\n')
        monkeypatch.setenv("TOOLHOST_CONFIG", str(toml_file))
        cfg = load_config()
        assert cfg.mcp_server_command == "srv --stdio"

    def test_env_missing_file_raises(self, clean_env, monkeypatch):
        monkeypatch.setenv("TOOLHOST_CONFIG", str(clean_env / "nope.toml"))
        with pytest.raises(ConfigError, match="non-existent"):
            load_config()


# ─── Environment Variables ────────────────────────────────────


class TestEnvVarOverrides:
    def test_project_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "my-proj")
        cfg = load_config()
        assert cfg.onboarding.project_override == "my-proj"

    def test_empty_env_project_is_unset(self, clean_env, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "")
        cfg = load_config()
        assert cfg.onboarding.project_override is None

    def test_file_project_not_overwritten(self, clean_env, monkeypatch):
        toml_file = clean_env / "test.toml"
        toml_file.write_text('[onboarding]\nproject_override = "from-file"\n')
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "from-env")
        cfg = load_config(path=toml_file)
        assert cfg.onboarding.project_override == "from-file"

    def test_endpoint_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("CODE_ASSIST_ENDPOINT", "http://localhost:9999")
        cfg = load_config()
        assert cfg.onboarding.endpoint == "http://localhost:9999"


# ─── Variable Expansion ───────────────────────────────────────


class TestVariableExpansion:
    def test_both_forms(self, monkeypatch):
        monkeypatch.setenv("TOKEN", "s3cret")
        assert expand_env_vars("Bearer $TOKEN") == "Bearer s3cret"
        assert expand_env_vars("${TOKEN}-x") == "s3cret-x"

    def test_unknown_left_as_written(self, monkeypatch):
        monkeypatch.delenv("TOOLHOST_NOT_SET", raising=False)
        assert expand_env_vars("$TOOLHOST_NOT_SET") == "$TOOLHOST_NOT_SET"

    def test_nested_values(self, monkeypatch):
        monkeypatch.setenv("ROOT", "/srv")
        data = {"a": ["$ROOT/x", 3, True], "b": {"c": "${ROOT}"}}
        assert expand_env_vars(data) == {"a": ["/srv/x", 3, True], "b": {"c": "/srv"}}

    def test_server_fields_expanded_on_load(self, clean_env, monkeypatch):
        monkeypatch.setenv("API_KEY", "k-123")
        monkeypatch.setenv("MCP_HOST", "tools.example")
        toml_file = clean_env / "test.toml"
        toml_file.write_text(
            "[mcp_servers.remote]\n"
            'http_url = "https://${MCP_HOST}/mcp"\n'
            'headers = { X-Api-Key = "$API_KEY" }\n'
            "[mcp_servers.local]\n"
            'command = "fs"\n'
            'env = { FS_TOKEN = "$API_KEY" }\n'
        )
        cfg = load_config(path=toml_file)
        assert cfg.mcp_servers["remote"].http_url == "https://tools.example/mcp"
        assert cfg.mcp_servers["remote"].headers == {"X-Api-Key": "k-123"}
        assert cfg.mcp_servers["local"].env == {"FS_TOKEN": "k-123"}

    def test_overrides_not_expanded(self, clean_env, monkeypatch):
        monkeypatch.setenv("LEVEL", "DEBUG")
        cfg = load_config(overrides={"logging": {"level": "$LEVEL"}})
        assert cfg.logging.level == "$LEVEL"
