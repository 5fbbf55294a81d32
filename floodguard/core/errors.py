"""Domain errors raised by the orchestration core."""
from __future__ import annotations


class FloodGuardError(Exception):
    """Base class for every error raised by the orchestration core."""


class UpstreamUnavailableError(FloodGuardError):
    """An external forecast or generative service failed or returned unusable data."""


class AgentExecutionError(FloodGuardError):
    """An agent raised past its own fallback path."""

    def __init__(self, agent_id: str, message: str) -> None:
        super().__init__(f"Agent {agent_id} failed: {message}")
        self.agent_id = agent_id


class PersistenceError(FloodGuardError):
    """A document store write failed."""

    def __init__(self, collection: str, message: str) -> None:
        super().__init__(f"Failed to save to '{collection}': {message}")
        self.collection = collection


class LoopAlreadyRunningError(FloodGuardError):
    """Raised when a loop is started while another one is active."""


AlreadyRunningError = LoopAlreadyRunningError
