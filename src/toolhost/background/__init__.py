"""Background agents: long-running task servers reached over MCP."""

from toolhost.background.agent import BackgroundAgent, load_background_agent
from toolhost.background.manager import BackgroundAgentManager
from toolhost.background.types import (
    AgentMessage,
    BackgroundTask,
    TaskList,
    TaskState,
    TaskStatus,
)

__all__ = [
    "AgentMessage",
    "BackgroundAgent",
    "BackgroundAgentManager",
    "BackgroundTask",
    "TaskList",
    "TaskState",
    "TaskStatus",
    "load_background_agent",
]
