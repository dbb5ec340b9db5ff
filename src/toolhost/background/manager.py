"""Background agent manager: concurrent bring-up and active selection."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from toolhost.background.agent import load_background_agent

if TYPE_CHECKING:
    from collections.abc import Mapping

    from toolhost.background.agent import BackgroundAgent
    from toolhost.config.schema import ToolServerConfig

logger = logging.getLogger(__name__)


class BackgroundAgentManager:
    """Owns every configured background agent for one process run.

    :meth:`load` brings all agents up at once; a server that fails is
    logged and left out. The first loaded agent, in configuration order,
    becomes active. The active pointer is a plain attribute mutated only
    from the event loop's thread.
    """

    def __init__(self, configs: Mapping[str, ToolServerConfig]) -> None:
        self._configs = dict(configs)
        self._agents: list[BackgroundAgent] = []
        self.active_agent: BackgroundAgent | None = None
        self._loaded = False

    @property
    def agents(self) -> list[BackgroundAgent]:
        """Successfully loaded agents, in configuration order."""
        return list(self._agents)

    async def load(self) -> list[BackgroundAgent]:
        """Connect to every configured agent concurrently.

        Raises:
            RuntimeError: If called a second time.
        """
        if self._loaded:
            msg = "Background agents are already loaded"
            raise RuntimeError(msg)
        self._loaded = True

        names = list(self._configs)
        outcomes = await asyncio.gather(
            *(load_background_agent(name, self._configs[name]) for name in names),
            return_exceptions=True,
        )

        loaded: list[BackgroundAgent] = []
        for name, outcome in zip(names, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error("Error loading background agent '%s': %s", name, outcome)
                continue
            loaded.append(outcome)

        self._agents = loaded
        self.active_agent = loaded[0] if loaded else None
        return self.agents

    def get_agent(self, name: str) -> BackgroundAgent | None:
        for agent in self._agents:
            if agent.server_name == name:
                return agent
        return None

    def set_active_agent_by_name(self, name: str) -> BackgroundAgent | None:
        """Make ``name`` the active agent; no match leaves none active."""
        self.active_agent = self.get_agent(name)
        return self.active_agent

    async def close(self) -> None:
        """Disconnect every loaded agent."""
        await asyncio.gather(*(agent.close() for agent in self._agents))
        self._agents = []
        self.active_agent = None
