"""Pydantic models for toolhost configuration."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CODE_ASSIST_ENDPOINT = "https://cloudcode-pa.googleapis.com"


class TransportKind(enum.Enum):
    """How a tool server is reached."""

    STDIO = "stdio"
    SSE = "sse"
    HTTP = "http"


class OAuthConfig(BaseModel):
    """Authentication settings for a remote tool server."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    scopes: list[str] = Field(default_factory=list)


class ToolServerConfig(BaseModel):
    """Configuration for a single MCP tool server.

    Exactly one transport target is used, in priority order:
    ``http_url`` (streamable HTTP), ``url`` (SSE), ``command`` (stdio).
    """

    model_config = ConfigDict(frozen=True)

    # stdio transport
    command: str | None = None
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None
    # SSE transport
    url: str | None = None
    # streamable HTTP transport
    http_url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    # common
    timeout: float | None = Field(default=None, gt=0)
    trust: bool = False
    oauth: OAuthConfig | None = None
    description: str | None = None

    @model_validator(mode="after")
    def _require_target(self) -> ToolServerConfig:
        if not (self.http_url or self.url or self.command):
            msg = "one of 'command', 'url' or 'http_url' is required"
            raise ValueError(msg)
        return self

    @property
    def transport(self) -> TransportKind:
        """Transport selected by this entry."""
        if self.http_url:
            return TransportKind.HTTP
        if self.url:
            return TransportKind.SSE
        return TransportKind.STDIO


class OnboardingConfig(BaseModel):
    """Cloud onboarding (load/onboard) settings."""

    endpoint: str = DEFAULT_CODE_ASSIST_ENDPOINT
    api_version: str = "v1internal"
    project_override: str | None = None
    poll_interval: float = Field(default=5.0, ge=0)
    max_poll_attempts: int | None = Field(default=60, ge=1)
    scopes: list[str] = Field(
        default_factory=lambda: [
            "https://www.googleapis.com/auth/cloud-platform",
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ]
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    file: str = ""


class ToolhostConfig(BaseModel):
    """Top-level configuration for toolhost."""

    mcp_servers: dict[str, ToolServerConfig] = Field(default_factory=dict)
    mcp_server_command: str | None = None
    background_agents: dict[str, ToolServerConfig] = Field(default_factory=dict)
    onboarding: OnboardingConfig = Field(default_factory=OnboardingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
