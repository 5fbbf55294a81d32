"""Shared plumbing for agents backed by a generative text service."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from floodguard.agents.base import Agent
from floodguard.core.errors import UpstreamUnavailableError
from floodguard.core.models import AgentDescriptor
from floodguard.core.trace import TraceBus
from floodguard.services.llm_pool import LLMPool, extract_json_block

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_structured(content: str, model: Type[ModelT]) -> ModelT:
    """Validate raw completion text against ``model``."""
    try:
        return model.model_validate_json(extract_json_block(content))
    except (ValidationError, json.JSONDecodeError, IndexError) as exc:
        raise UpstreamUnavailableError(f"Unparseable {model.__name__} output: {exc}") from exc


class LLMAgent(Agent):
    """Agent that asks an LLM for a structured answer and validates it."""

    def __init__(
        self,
        descriptor: AgentDescriptor,
        bus: TraceBus,
        llm_pool: Optional[LLMPool] = None,
    ) -> None:
        super().__init__(descriptor, bus)
        self._llm_pool = llm_pool
        self.model_name = descriptor.config.metadata.get("model", "default")
        self.temperature = float(descriptor.config.metadata.get("temperature", 0.7))

    async def ask(
        self,
        messages: List[Dict[str, str]],
        response_model: Type[ModelT],
        schema_name: str,
    ) -> ModelT:
        """Query the model and return validated output.

        Every failure mode, including a missing pool, surfaces as
        :class:`UpstreamUnavailableError`.
        """
        if self._llm_pool is None:
            raise UpstreamUnavailableError("No LLM pool configured")
        try:
            content = await self._llm_pool.complete_json(
                self.model_name,
                messages,
                schema_name=schema_name,
                schema=response_model.model_json_schema(),
                temperature=self.temperature,
            )
        except UpstreamUnavailableError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise UpstreamUnavailableError(f"LLM call failed: {exc}") from exc
        return parse_structured(content, response_model)

    @staticmethod
    def dump(payload: Any) -> str:
        return json.dumps(payload, indent=2, default=str)
