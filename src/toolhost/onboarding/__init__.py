"""Code Assist user onboarding."""

from toolhost.onboarding.server import CODE_ASSIST_API_VERSION, CodeAssistServer
from toolhost.onboarding.setup import (
    DEFAULT_POLL_INTERVAL,
    OnboardingFlow,
    OnboardingState,
    UserData,
    get_onboard_tier,
    setup_user,
)
from toolhost.onboarding.types import (
    ClientMetadata,
    LoadCodeAssistRequest,
    LoadCodeAssistResponse,
    LongRunningOperation,
    OnboardUserRequest,
    OnboardUserResponse,
    UserTier,
    UserTierId,
)

__all__ = [
    "CODE_ASSIST_API_VERSION",
    "DEFAULT_POLL_INTERVAL",
    "ClientMetadata",
    "CodeAssistServer",
    "LoadCodeAssistRequest",
    "LoadCodeAssistResponse",
    "LongRunningOperation",
    "OnboardUserRequest",
    "OnboardUserResponse",
    "OnboardingFlow",
    "OnboardingState",
    "UserData",
    "UserTier",
    "UserTierId",
    "get_onboard_tier",
    "setup_user",
]
