"""Exception hierarchy for toolhost.

Every module imports from here. The hierarchy is:

    ToolhostError
    ├── ConfigError
    ├── ProviderError(provider_id)
    │   ├── ProviderConnectionError      (also a builtin ConnectionError)
    │   ├── ToolTimeoutError(timeout)    (also a builtin TimeoutError)
    │   └── ToolExecutionError
    └── OnboardingError
        ├── ProjectIdRequiredError
        ├── OnboardingTimeoutError
        └── BackendError(status_code)
"""

from __future__ import annotations


class ToolhostError(Exception):
    """Base exception for all toolhost errors."""


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(ToolhostError):
    """Malformed or incomplete provider/credential configuration."""


# ─── Provider Errors ──────────────────────────────────────────


class ProviderError(ToolhostError):
    """Base for tool-server related errors."""

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"[{provider_id}] {message}")


class ProviderConnectionError(ProviderError, ConnectionError):
    """Could not start or connect to a tool server."""


class ToolTimeoutError(ProviderError, TimeoutError):
    """A tool call exceeded its time bound. The connection stays usable."""

    def __init__(self, provider_id: str, tool_name: str, timeout: float) -> None:
        self.tool_name = tool_name
        self.timeout = timeout
        super().__init__(
            provider_id,
            f"Tool '{tool_name}' timed out after {timeout:g}s",
        )


class ToolExecutionError(ProviderError):
    """The tool server reported an error result for a call."""


# ─── Onboarding Errors ────────────────────────────────────────


class OnboardingError(ToolhostError):
    """Base for cloud onboarding failures."""


class ProjectIdRequiredError(OnboardingError):
    """No cloud project id could be resolved from any source."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or (
                "This account requires setting the GOOGLE_CLOUD_PROJECT "
                "environment variable (or onboarding.project_override in "
                "the config file) to a Google Cloud project id."
            )
        )


class OnboardingTimeoutError(OnboardingError):
    """The onboarding operation did not complete within the poll budget."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"Onboarding did not complete after {attempts} poll attempts"
        )


class BackendError(OnboardingError):
    """A load/onboard call to the cloud backend failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        prefix = f"HTTP {status_code}: " if status_code is not None else ""
        super().__init__(f"{prefix}{message}")
