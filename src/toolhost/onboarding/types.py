"""Wire types for the Code Assist load/onboard API.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UserTierId(str, enum.Enum):
    """Tier ids returned by the backend."""

    FREE = "free-tier"
    LEGACY = "legacy-tier"
    STANDARD = "standard-tier"


class ClientMetadata(_Wire):
    """Fixed identity of this client, sent with every call."""

    ide_type: str = "IDE_UNSPECIFIED"
    platform: str = "PLATFORM_UNSPECIFIED"
    plugin_type: str = "GEMINI"
    duet_project: str | None = None


class PrivacyNotice(_Wire):
    show_notice: bool = False
    notice_text: str | None = None


class UserTier(_Wire):
    id: str
    name: str = ""
    description: str = ""
    # True when the tier needs the user to supply their own project
    user_defined_cloudaicompanion_project: bool | None = None
    is_default: bool | None = None
    privacy_notice: PrivacyNotice | None = None
    has_accepted_tos: bool | None = None
    has_onboarded_previously: bool | None = None


class IneligibleTier(_Wire):
    reason_code: str = "UNKNOWN"
    reason_message: str = ""
    tier_id: str = ""
    tier_name: str = ""


class LoadCodeAssistRequest(_Wire):
    cloudaicompanion_project: str | None = None
    metadata: ClientMetadata


class LoadCodeAssistResponse(_Wire):
    current_tier: UserTier | None = None
    allowed_tiers: list[UserTier] | None = None
    ineligible_tiers: list[IneligibleTier] | None = None
    cloudaicompanion_project: str | None = None


class OnboardUserRequest(_Wire):
    tier_id: str
    cloudaicompanion_project: str | None = None
    metadata: ClientMetadata


class ProjectRef(_Wire):
    id: str = ""
    name: str = ""


class OnboardUserResponse(_Wire):
    cloudaicompanion_project: ProjectRef | None = None


class LongRunningOperation(_Wire):
    """A pollable backend job; ``done`` is the only completion signal."""

    name: str = ""
    done: bool = False
    response: OnboardUserResponse | None = None

    @property
    def project_id(self) -> str:
        """Project id carried by a completed operation, or ``""``."""
        if self.response is None or self.response.cloudaicompanion_project is None:
            return ""
        return self.response.cloudaicompanion_project.id
