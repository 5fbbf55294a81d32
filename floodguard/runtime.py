"""Application runtime composition helpers."""
from __future__ import annotations

from functools import lru_cache

from floodguard.agents.comms import CommsAgent
from floodguard.agents.drain import DrainAgent
from floodguard.agents.risk_fusion import RiskFusionAgent
from floodguard.agents.social import SocialAgent
from floodguard.agents.weather import WeatherAgent
from floodguard.config import config
from floodguard.core.trace import TraceBus, TraceStore
from floodguard.orchestration.orchestrator import Orchestrator
from floodguard.services.forecast import OpenMeteoClient
from floodguard.services.llm_pool import LLMPool
from floodguard.services.storage import CycleRepository
from floodguard.services.water_levels import WaterLevelRegistry


@lru_cache
def get_trace_store() -> TraceStore:
    return TraceStore(max_size=config.trace_max_size)


@lru_cache
def get_bus() -> TraceBus:
    return TraceBus(get_trace_store(), simulate_latency=config.trace_simulate_latency)


@lru_cache
def get_llm_pool() -> LLMPool:
    pool = LLMPool()

    # Register whichever generative backend is configured
    if config.azure_openai:
        pool.register_azure_openai(config.llm_model, config.azure_openai)
    elif config.openai_compatible:
        pool.register_openai_compatible(config.llm_model, config.openai_compatible)

    return pool


@lru_cache
def get_repository() -> CycleRepository:
    return CycleRepository.from_config(config.mongo)


@lru_cache
def get_water_levels() -> WaterLevelRegistry:
    return WaterLevelRegistry()


@lru_cache
def get_orchestrator() -> Orchestrator:
    bus = get_bus()
    llm_pool = get_llm_pool()
    return Orchestrator(
        bus=bus,
        repository=get_repository(),
        weather=WeatherAgent(bus, OpenMeteoClient(config.forecast)),
        drain=DrainAgent(bus),
        social=SocialAgent(bus, llm_pool, model=config.llm_model),
        risk=RiskFusionAgent(bus, llm_pool, model=config.llm_model),
        comms=CommsAgent(bus, llm_pool, model=config.llm_model),
        phase_timeout=config.phase_timeout,
        single_flight=config.loop_single_flight,
    )
