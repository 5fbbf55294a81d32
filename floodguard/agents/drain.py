"""A2 - drain/grid agent: synthesized drain conditions and citizen reports."""
from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from floodguard.agents.base import Agent
from floodguard.core.models import AgentConfig, AgentContext, AgentDescriptor, utc_now_iso
from floodguard.core.trace import TraceBus

CENTER_LAT = 28.6
CENTER_LON = 77.2


def classify_severity(value: float) -> str:
    if value > 0.7:
        return "high"
    if value > 0.4:
        return "medium"
    return "low"


def synthesize_incidents(count: int, zone: str, rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
    rng = rng or random.Random()
    incidents = []
    for _ in range(max(0, count)):
        is_drain = rng.random() > 0.5
        severity = classify_severity(rng.random())
        if is_drain:
            description = f"Drain {'overflow' if rng.random() > 0.5 else 'blockage'} detected"
        else:
            description = "Waterlogging reported by citizen"
        incidents.append(
            {
                "type": "drain" if is_drain else "citizen",
                "zone": zone,
                "severity": severity,
                "description": description,
                "locationName": zone,
                "latitude": round(CENTER_LAT + (rng.random() - 0.5) * 0.2, 5),
                "longitude": round(CENTER_LON + (rng.random() - 0.5) * 0.2, 5),
                "timestamp": utc_now_iso(),
            }
        )
    return incidents


class DrainAgent(Agent):
    """Processes drain conditions and citizen incident reports."""

    def __init__(self, bus: TraceBus, *, rng: Optional[random.Random] = None) -> None:
        super().__init__(
            AgentDescriptor(agent_id="A2", config=AgentConfig(name="Drain/Grid Agent", role="drain")),
            bus,
        )
        self._rng = rng or random.Random()

    async def execute(self, context: AgentContext, correlation_id: str) -> Dict[str, Any]:
        zone = context.zone_label
        incidents = synthesize_incidents(int(context.params.get("inc") or 1), zone, self._rng)
        return {
            "agent": self.agent_id,
            "zone": zone,
            "incidents": incidents,
            "totalIncidents": len(incidents),
            "highSeverityCount": sum(1 for i in incidents if i["severity"] == "high"),
            "timestamp": utc_now_iso(),
            "correlationId": correlation_id,
        }
