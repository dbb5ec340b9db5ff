"""Pydantic models for background agent tasks.

Both the client (:mod:`toolhost.background.agent`) and the demo server
(:mod:`toolhost.mcp.server`) speak these shapes as MCP structured content.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskState(enum.Enum):
    """Lifecycle states of a background task."""

    SUBMITTED = "submitted"
    WORKING = "working"
    INPUT_REQUIRED = "input-required"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"


class AgentMessage(BaseModel):
    """A message exchanged with a background agent."""

    model_config = ConfigDict(extra="allow")

    role: str = Field(pattern="^(user|agent)$")
    parts: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def user_text(cls, text: str) -> AgentMessage:
        return cls(role="user", parts=[{"text": text}])

    def text(self) -> str:
        """Concatenate the text parts of this message."""
        return "".join(str(p.get("text", "")) for p in self.parts).strip()


class TaskStatus(BaseModel):
    state: TaskState
    message: AgentMessage | None = None


class BackgroundTask(BaseModel):
    """A unit of work running inside a background agent."""

    id: str = Field(pattern=r"^[a-zA-Z0-9._-]+$")
    status: TaskStatus
    history: list[AgentMessage] | None = None


class TaskList(BaseModel):
    tasks: list[BackgroundTask] = Field(default_factory=list)
