"""Shared fixtures: quiet trace bus, stub LLM clients and mocked Mongo collections."""
from __future__ import annotations

import json
import random
from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from pymongo.errors import PyMongoError

from floodguard.agents.comms import CommsAgent
from floodguard.agents.drain import DrainAgent
from floodguard.agents.risk_fusion import RiskFusionAgent
from floodguard.agents.social import SocialAgent
from floodguard.agents.weather import WeatherAgent
from floodguard.core.trace import TraceBus, TraceStore
from floodguard.orchestration.orchestrator import Orchestrator
from floodguard.services.forecast import OpenMeteoClient
from floodguard.services.llm_pool import LLMPool
from floodguard.services.storage import CycleRepository


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store() -> TraceStore:
    return TraceStore()


@pytest.fixture
def bus(store: TraceStore) -> TraceBus:
    return TraceBus(store, simulate_latency=False)


class StubCompletions:
    """Mimics ``client.chat.completions`` by replaying canned contents."""

    def __init__(self, contents: List[Any]) -> None:
        self._contents = list(contents)
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        content = self._contents.pop(0) if self._contents else "{}"
        if isinstance(content, Exception):
            raise content
        if not isinstance(content, str):
            content = json.dumps(content)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def stub_llm_pool(*contents: Any) -> tuple[LLMPool, StubCompletions]:
    completions = StubCompletions(list(contents))
    pool = LLMPool()
    pool.register_client("default", SimpleNamespace(chat=SimpleNamespace(completions=completions)), model="stub-model")
    return pool, completions


def failing_forecast_client() -> OpenMeteoClient:
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"reason": "down"}))
    return OpenMeteoClient(transport=transport)


def mock_database(fail_on: tuple = ()) -> tuple[MagicMock, Dict[str, MagicMock]]:
    """MagicMock standing in for ``AsyncIOMotorDatabase`` with per-collection mocks."""
    collections: Dict[str, MagicMock] = {}

    def get_collection(name: str) -> MagicMock:
        if name not in collections:
            collection = MagicMock()
            if name in fail_on:
                collection.insert_one = AsyncMock(side_effect=PyMongoError("write failed"))
            else:
                collection.insert_one = AsyncMock(return_value=SimpleNamespace(inserted_id=f"{name}-id"))
            collections[name] = collection
        return collections[name]

    db = MagicMock()
    db.__getitem__.side_effect = get_collection
    return db, collections


@pytest.fixture
def fallback_orchestrator(bus: TraceBus) -> Orchestrator:
    """Orchestrator whose agents all take their fallback path."""
    rng = random.Random(7)
    pool = LLMPool()
    return Orchestrator(
        bus=bus,
        repository=CycleRepository(),
        weather=WeatherAgent(bus, failing_forecast_client(), rng=rng),
        drain=DrainAgent(bus, rng=rng),
        social=SocialAgent(bus, pool, rng=rng),
        risk=RiskFusionAgent(bus, pool),
        comms=CommsAgent(bus, pool),
    )
