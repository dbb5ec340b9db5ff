"""User onboarding: resolve a tier and project against the Code Assist backend.

The flow is a small state machine::

    NOT_STARTED -> LOADING -> ONBOARDING_PENDING -> ONBOARDING_DONE
                        \\              \\
                         +--------------+--> FAILED

``loadCodeAssist`` reports the user's tier and any project already bound
to them. ``onboardUser`` returns a long-running operation that is
re-submitted every ``poll_interval`` seconds until it reports ``done``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from toolhost.core.errors import OnboardingTimeoutError, ProjectIdRequiredError
from toolhost.onboarding.types import (
    ClientMetadata,
    LoadCodeAssistRequest,
    LoadCodeAssistResponse,
    OnboardUserRequest,
    UserTier,
    UserTierId,
)

if TYPE_CHECKING:
    from toolhost.onboarding.server import CodeAssistServer
    from toolhost.onboarding.types import LongRunningOperation

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class OnboardingState(enum.Enum):
    NOT_STARTED = "not_started"
    LOADING = "loading"
    ONBOARDING_PENDING = "onboarding_pending"
    ONBOARDING_DONE = "onboarding_done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class UserData:
    """Outcome of a completed onboarding."""

    project_id: str
    user_tier: str


def get_onboard_tier(res: LoadCodeAssistResponse) -> UserTier:
    """Pick the tier to onboard into.

    The current tier wins, then the default allowed tier. Without either
    the user falls back to the legacy tier, which needs their own project.
    """
    if res.current_tier is not None:
        return res.current_tier
    for tier in res.allowed_tiers or []:
        if tier.is_default:
            return tier
    return UserTier(
        id=UserTierId.LEGACY.value,
        name="",
        description="",
        user_defined_cloudaicompanion_project=True,
    )


class OnboardingFlow:
    """One onboarding attempt.

    Args:
        server: Backend client.
        project_override: Project chosen by the caller. Takes precedence
            over anything the backend reports.
        poll_interval: Seconds between ``onboardUser`` polls.
        max_poll_attempts: Give up with :class:`OnboardingTimeoutError`
            after this many polls. ``None`` polls until done.
    """

    def __init__(
        self,
        server: CodeAssistServer,
        *,
        project_override: str | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_attempts: int | None = None,
    ) -> None:
        if max_poll_attempts is not None and max_poll_attempts < 1:
            msg = f"max_poll_attempts must be at least 1, got {max_poll_attempts}"
            raise ValueError(msg)
        self._server = server
        self._project_override = project_override or None
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts

        self.state = OnboardingState.NOT_STARTED
        self.user_tier: str | None = None
        self.project_id = ""
        self.poll_count = 0
        self.operation: LongRunningOperation | None = None

    async def run(self) -> UserData:
        """Drive the flow to completion.

        Raises:
            ProjectIdRequiredError: No project from the caller or backend.
            OnboardingTimeoutError: Polling hit ``max_poll_attempts``.
            BackendError: A backend call failed.
            RuntimeError: The flow was already run.
        """
        if self.state is not OnboardingState.NOT_STARTED:
            msg = f"Onboarding already ran (state: {self.state.value})"
            raise RuntimeError(msg)
        try:
            return await self._run()
        except BaseException:
            self.state = OnboardingState.FAILED
            raise

    async def _run(self) -> UserData:
        self.state = OnboardingState.LOADING
        metadata = ClientMetadata(duet_project=self._project_override)
        load_res = await self._server.load_code_assist(
            LoadCodeAssistRequest(
                cloudaicompanion_project=self._project_override,
                metadata=metadata,
            )
        )

        known_project = (
            self._project_override or load_res.cloudaicompanion_project or ""
        )
        tier = get_onboard_tier(load_res)
        self.user_tier = tier.id
        if tier.user_defined_cloudaicompanion_project and not known_project:
            raise ProjectIdRequiredError

        self.state = OnboardingState.ONBOARDING_PENDING
        request = OnboardUserRequest(
            tier_id=tier.id,
            cloudaicompanion_project=known_project,
            metadata=metadata,
        )
        operation = await self._server.onboard_user(request)
        while not operation.done:
            if (
                self._max_poll_attempts is not None
                and self.poll_count >= self._max_poll_attempts
            ):
                raise OnboardingTimeoutError(self.poll_count)
            logger.debug(
                "Onboarding not done, polling again in %gs", self._poll_interval
            )
            await asyncio.sleep(self._poll_interval)
            self.poll_count += 1
            operation = await self._server.onboard_user(request)

        self.operation = operation
        if not operation.project_id and not known_project:
            raise ProjectIdRequiredError

        self.project_id = operation.project_id
        self.state = OnboardingState.ONBOARDING_DONE
        logger.info(
            "Onboarded into tier %s (project: %s)",
            tier.id,
            self.project_id or "<none>",
        )
        return UserData(project_id=self.project_id, user_tier=tier.id)


async def setup_user(server: CodeAssistServer, **kwargs: Any) -> UserData:
    """Run a fresh :class:`OnboardingFlow` against ``server``."""
    return await OnboardingFlow(server, **kwargs).run()
