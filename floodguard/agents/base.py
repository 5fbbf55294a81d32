"""Base agent definition used by the orchestrator."""
from __future__ import annotations

import abc
from typing import Any, Optional

import structlog

from floodguard.core.errors import AgentExecutionError
from floodguard.core.models import (
    AgentConfig,
    AgentContext,
    AgentDescriptor,
    AgentState,
    new_correlation_id,
)
from floodguard.core.trace import TraceBus

logger = structlog.get_logger(__name__)


class Agent(abc.ABC):
    """Abstract agent: one ``execute`` step wrapped by traced ``run``."""

    def __init__(self, descriptor: AgentDescriptor, bus: TraceBus) -> None:
        self.descriptor = descriptor
        self._bus = bus

    @property
    def agent_id(self) -> str:
        return self.descriptor.agent_id

    @property
    def config(self) -> AgentConfig:
        return self.descriptor.config

    @property
    def name(self) -> str:
        return self.descriptor.config.name

    @abc.abstractmethod
    async def execute(self, context: AgentContext, correlation_id: str) -> Any:
        """Produce this agent's slice of data for one cycle."""

    async def run(
        self,
        context: AgentContext,
        caller_id: str = "A0",
        correlation_id: Optional[str] = None,
    ) -> Any:
        """Execute and send the result back to ``caller_id`` as a response envelope."""
        corr_id = correlation_id or new_correlation_id()
        self.descriptor.state = AgentState.RUNNING
        try:
            result = await self.execute(context, corr_id)
        except Exception as exc:  # noqa: BLE001
            self.descriptor.state = AgentState.FAILED
            self.descriptor.last_error = str(exc)
            logger.error("Agent execution failed", agent=self.agent_id, correlation_id=corr_id, error=str(exc))
            raise AgentExecutionError(self.agent_id, str(exc) or type(exc).__name__) from exc

        self.descriptor.state = AgentState.IDLE
        self.descriptor.task_count += 1
        await self._bus.send_response(self.agent_id, caller_id, result, corr_id)
        return result
