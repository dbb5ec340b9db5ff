"""Core types, errors, and shared utilities."""

from toolhost.core.errors import (
    BackendError,
    ConfigError,
    OnboardingError,
    OnboardingTimeoutError,
    ProjectIdRequiredError,
    ProviderConnectionError,
    ProviderError,
    ToolExecutionError,
    ToolhostError,
    ToolTimeoutError,
)

__all__ = [
    "BackendError",
    "ConfigError",
    "OnboardingError",
    "OnboardingTimeoutError",
    "ProjectIdRequiredError",
    "ProviderConnectionError",
    "ProviderError",
    "ToolExecutionError",
    "ToolTimeoutError",
    "ToolhostError",
]
