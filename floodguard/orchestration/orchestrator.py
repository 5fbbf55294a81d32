"""Orchestrator driving agent cycles and the recurring loop."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Set, TypeVar

import structlog

from floodguard.agents.base import Agent
from floodguard.agents.risk_fusion import extract_records
from floodguard.core.errors import LoopAlreadyRunningError
from floodguard.core.models import (
    A2AEnvelope,
    AgentContext,
    AgentDescriptor,
    CyclePhase,
    CycleResult,
    new_correlation_id,
)
from floodguard.core.trace import TraceBus
from floodguard.services.storage import CycleRepository

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class Orchestrator:
    """Coordinate the phased agent cycle and its recurring schedule.

    Phase 1 runs the weather, drain and social agents concurrently, phase 2
    fuses their output into a risk verdict and phase 3 turns the verdict into
    alerts. Overlapping cycles are allowed unless ``single_flight`` is set, in
    which case loop ticks are skipped while a cycle is in flight.
    """

    def __init__(
        self,
        *,
        bus: TraceBus,
        repository: CycleRepository,
        weather: Agent,
        drain: Agent,
        social: Agent,
        risk: Agent,
        comms: Agent,
        orchestrator_id: str = "A0",
        phase_timeout: Optional[float] = None,
        single_flight: bool = False,
    ) -> None:
        self._bus = bus
        self._repository = repository
        self._weather = weather
        self._drain = drain
        self._social = social
        self._risk = risk
        self._comms = comms
        self.orchestrator_id = orchestrator_id
        self.phase_timeout = phase_timeout
        self.single_flight = single_flight

        self._active: Dict[str, CyclePhase] = {}
        self._is_looping = False
        self._loop_generation = 0
        self.last_phase = CyclePhase.IDLE
        self._timer: Optional[asyncio.Task[None]] = None
        self._tick_tasks: Set[asyncio.Task[CycleResult]] = set()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self, context: AgentContext) -> CycleResult:
        """Run one full cycle and describe the outcome; agent errors never escape."""
        correlation_id = new_correlation_id("cycle")
        caller = self.orchestrator_id
        log = logger.bind(correlation_id=correlation_id)

        try:
            self._enter(correlation_id, CyclePhase.PARALLEL)
            for agent in (self._weather, self._drain, self._social):
                await self._bus.send_request(caller, agent.agent_id, {"phase": "PARALLEL"}, correlation_id)
            weather_data, incident_data, social_data = await self._bounded(
                asyncio.gather(
                    self._weather.run(context, caller, correlation_id),
                    self._drain.run(context, caller, correlation_id),
                    self._social.run(context, caller, correlation_id),
                )
            )

            self._enter(correlation_id, CyclePhase.FUSE)
            await self._bus.send_request(caller, self._risk.agent_id, {"phase": "FUSE"}, correlation_id)
            risk_context = context.derive(
                weatherData=weather_data,
                incidentData=incident_data,
                socialData=social_data,
            )
            risk_assessment = await self._bounded(self._risk.run(risk_context, caller, correlation_id))

            self._enter(correlation_id, CyclePhase.COMMS)
            await self._bus.send_request(caller, self._comms.agent_id, {"phase": "COMMS"}, correlation_id)
            comms_context = context.derive(riskAssessment=risk_assessment)
            alerts = await self._bounded(self._comms.run(comms_context, caller, correlation_id))

            self._enter(correlation_id, CyclePhase.PERSISTING)
            await self.persist_cycle_results(
                correlation_id,
                weather=weather_data,
                incidents=incident_data,
                social=social_data,
                risk=risk_assessment,
                alerts=alerts,
            )
        except Exception as exc:  # noqa: BLE001
            log.error("Agent cycle failed", phase=self._active.get(correlation_id, CyclePhase.IDLE).value, error=str(exc))
            self._finish(correlation_id, CyclePhase.FAILED)
            return CycleResult(
                success=False,
                correlation_id=correlation_id,
                error=str(exc) or type(exc).__name__,
            )

        self._finish(correlation_id, CyclePhase.DONE)
        log.info("Agent cycle completed", risk_tier=(risk_assessment or {}).get("riskTier"))
        return CycleResult(
            success=True,
            correlation_id=correlation_id,
            results={
                "weather": weather_data,
                "incidents": incident_data,
                "social": social_data,
                "risk": risk_assessment,
                "alerts": alerts,
            },
        )

    async def persist_cycle_results(
        self,
        correlation_id: str,
        *,
        weather: Any,
        incidents: Any,
        social: Any,
        risk: Any,
        alerts: Any,
    ) -> None:
        """Save every artifact; a failing category is logged and the rest still saved."""
        log = logger.bind(correlation_id=correlation_id)

        async def save_all(category: str, save, records: Iterable[Dict[str, Any]]) -> None:
            try:
                for record in records:
                    await save(record)
            except Exception as exc:  # noqa: BLE001
                log.error("Failed to persist cycle artifacts", category=category, error=str(exc))

        await save_all(
            "forecasts",
            self._repository.save_forecast,
            (
                {
                    "zone": f.get("zone"),
                    "rainProb": f.get("rainProb"),
                    "rainAmount": f.get("rainAmount"),
                    "riskScore": f.get("riskScore") or 0,
                }
                for f in extract_records(weather, "forecasts")
            ),
        )
        await save_all(
            "incidents",
            self._repository.save_incident,
            (
                {
                    "type": i.get("type"),
                    "description": i.get("description"),
                    "zone": i.get("zone"),
                    "locationName": i.get("locationName"),
                    "latitude": i.get("latitude"),
                    "longitude": i.get("longitude"),
                }
                for i in extract_records(incidents, "incidents")
            ),
        )
        await save_all(
            "social",
            self._repository.save_social_post,
            (
                {
                    "text": p.get("text"),
                    "user": p.get("user"),
                    "zone": p.get("zone"),
                    "riskFlag": p.get("riskFlag") or 0,
                }
                for p in extract_records(social, "posts")
            ),
        )
        if risk:
            await save_all(
                "risk",
                self._repository.save_risk_assessment,
                [
                    {
                        "overallRiskScore": risk.get("overallRiskScore") or 0,
                        "riskTier": risk.get("riskTier"),
                        "highRiskZones": list(risk.get("highRiskZones") or []),
                        "keyFactors": list(risk.get("keyFactors") or []),
                        "confidence": risk.get("confidence") or 0.5,
                        "reasoning": risk.get("reasoning") or "",
                        "correlationId": correlation_id,
                    }
                ],
            )
        fallback_tier = (risk or {}).get("riskTier") or "SAFE"
        await save_all(
            "alerts",
            self._repository.save_alert,
            (
                {
                    "audience": a.get("audience"),
                    "message": a.get("message"),
                    "riskTier": a.get("riskTier") or fallback_tier,
                }
                for a in extract_records(alerts, "alerts")
            ),
        )
        if self._repository.enabled:
            log.info("Persisted cycle to database")

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def start_loop(self, interval_ms: int, context: AgentContext) -> CycleResult:
        """Run one cycle now, then keep scheduling cycles every ``interval_ms``."""
        if self._is_looping:
            raise LoopAlreadyRunningError("Loop already running")
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")

        self._is_looping = True
        self._loop_generation += 1
        generation = self._loop_generation
        logger.info("Agent loop started", interval_ms=interval_ms)
        try:
            first = await self.run_cycle(context)
        except BaseException:
            if generation == self._loop_generation:
                self._is_looping = False
            raise
        # only the latest start call owns the timer
        if self._is_looping and generation == self._loop_generation:
            self._timer = asyncio.create_task(self._tick(interval_ms / 1000, context, generation))
        return first

    def stop_loop(self) -> None:
        """Stop scheduling new cycles; cycles already running are left to finish."""
        was_running = self._is_looping
        self._is_looping = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if was_running:
            logger.info("Agent loop stopped")

    def is_loop_running(self) -> bool:
        return self._is_looping

    async def _tick(self, interval: float, context: AgentContext, generation: int) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + interval
        while self._is_looping and generation == self._loop_generation:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            next_fire += interval
            if not self._is_looping or generation != self._loop_generation:
                break
            if self.single_flight and self._active:
                logger.info("Skipping loop tick, cycle still in flight", active=len(self._active))
                continue
            task = asyncio.create_task(self.run_cycle(context))
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def active_cycles(self) -> Dict[str, str]:
        """Current phase of every in-flight cycle, keyed by correlation id."""
        return {corr_id: phase.value for corr_id, phase in self._active.items()}

    def list_agents(self) -> Iterable[AgentDescriptor]:
        return (
            agent.descriptor
            for agent in (self._weather, self._drain, self._social, self._risk, self._comms)
        )

    def drain_trace(self) -> List[A2AEnvelope]:
        return self._bus.store.drain_all()

    def recent_trace(self, count: int = 50) -> List[A2AEnvelope]:
        return self._bus.store.peek_recent(count)

    async def shutdown(self) -> None:
        """Stop the loop and wait for cycles it already spawned."""
        self.stop_loop()
        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)

    def _enter(self, correlation_id: str, phase: CyclePhase) -> None:
        self._active[correlation_id] = phase
        logger.debug("Cycle phase", correlation_id=correlation_id, phase=phase.value)

    def _finish(self, correlation_id: str, phase: CyclePhase) -> None:
        self._active.pop(correlation_id, None)
        self.last_phase = phase
        logger.debug("Cycle phase", correlation_id=correlation_id, phase=phase.value)

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        if self.phase_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.phase_timeout)

