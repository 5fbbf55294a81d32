"""HTTP API exposing orchestrator capabilities."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from floodguard.config import config
from floodguard.core.errors import LoopAlreadyRunningError
from floodguard.core.models import AgentContext, AgentDescriptor, Location
from floodguard.orchestration.orchestrator import Orchestrator
from floodguard.runtime import get_orchestrator

ops_router = APIRouter(prefix="/ops", tags=["ops"])
agents_router = APIRouter(prefix="/agents", tags=["agents"])


class CycleRequest(BaseModel):
    inc: int = Field(1, ge=1, description="Number of incidents to synthesize")
    soc: int = Field(2, ge=1, description="Number of social posts to generate")
    lat: Optional[float] = None
    lon: Optional[float] = None
    location: Optional[str] = None
    zone_id: Optional[str] = None

    def to_context(self) -> AgentContext:
        location = None
        if self.lat is not None and self.lon is not None:
            location = Location(
                latitude=self.lat,
                longitude=self.lon,
                label=self.location or "Delhi",
                zone_id=self.zone_id or "delhi",
            )
        return AgentContext(location=location, params={"inc": self.inc, "soc": self.soc})


class LoopStartRequest(CycleRequest):
    interval_ms: int = Field(default_factory=lambda: config.loop_interval_ms, gt=0)


class LoopStatusResponse(BaseModel):
    is_running: bool
    active_cycles: Dict[str, str]
    last_phase: str


class AgentResponse(BaseModel):
    agent_id: str
    name: str
    role: str
    state: str
    task_count: int
    last_error: Optional[str]

    @classmethod
    def from_descriptor(cls, descriptor: AgentDescriptor) -> "AgentResponse":
        return cls(
            agent_id=descriptor.agent_id,
            name=descriptor.config.name,
            role=descriptor.config.role,
            state=descriptor.state.name,
            task_count=descriptor.task_count,
            last_error=descriptor.last_error,
        )


@ops_router.post("/run")
async def run_cycle(
    request: CycleRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    result = await orchestrator.run_cycle(request.to_context())
    return result.to_dict()


@ops_router.post("/loop/start")
async def start_loop(
    request: LoopStartRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        await orchestrator.start_loop(request.interval_ms, request.to_context())
    except LoopAlreadyRunningError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return {"success": True, "message": "Loop started", "interval_ms": request.interval_ms}


@ops_router.post("/loop/stop")
async def stop_loop(orchestrator: Orchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    orchestrator.stop_loop()
    return {"success": True, "message": "Loop stopped"}


@ops_router.get("/loop/status", response_model=LoopStatusResponse)
async def loop_status(orchestrator: Orchestrator = Depends(get_orchestrator)) -> LoopStatusResponse:
    return LoopStatusResponse(
        is_running=orchestrator.is_loop_running(),
        active_cycles=orchestrator.active_cycles(),
        last_phase=orchestrator.last_phase.value,
    )


@ops_router.get("/trace")
async def drain_trace(orchestrator: Orchestrator = Depends(get_orchestrator)) -> List[Dict[str, Any]]:
    """Return and clear every buffered trace envelope."""
    return [envelope.to_dict() for envelope in orchestrator.drain_trace()]


@ops_router.get("/trace/recent")
async def recent_trace(
    count: int = Query(50, ge=1, le=500),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    return [envelope.to_dict() for envelope in orchestrator.recent_trace(count)]


@agents_router.get("", response_model=List[AgentResponse])
async def list_agents(orchestrator: Orchestrator = Depends(get_orchestrator)) -> List[AgentResponse]:
    return [AgentResponse.from_descriptor(desc) for desc in orchestrator.list_agents()]
