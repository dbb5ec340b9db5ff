"""Configuration loading and validation."""

from toolhost.config.loader import load_config
from toolhost.config.schema import (
    LoggingConfig,
    OAuthConfig,
    OnboardingConfig,
    ToolhostConfig,
    ToolServerConfig,
    TransportKind,
)

__all__ = [
    "LoggingConfig",
    "OAuthConfig",
    "OnboardingConfig",
    "ToolServerConfig",
    "ToolhostConfig",
    "TransportKind",
    "load_config",
]
