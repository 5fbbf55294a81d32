"""A1 - weather agent: per-zone rain outlook derived from one Open-Meteo reading."""
from __future__ import annotations

import random
from typing import Any, Dict, List, Optional, Sequence

import structlog

from floodguard.agents.base import Agent
from floodguard.core.models import AgentConfig, AgentContext, AgentDescriptor, utc_now_iso
from floodguard.core.trace import TraceBus
from floodguard.services.forecast import OpenMeteoClient

logger = structlog.get_logger(__name__)

DELHI_ZONES = (
    "South Delhi",
    "Central Delhi",
    "North Delhi",
    "East Delhi",
    "West Delhi",
    "North East Delhi",
    "North West Delhi",
    "South West Delhi",
    "Shahdara",
    "New Delhi",
    "Yamuna Floodplain",
)

FLOOD_PRONE_MULTIPLIER = 1.15
MAX_RISK_RAINFALL_MM = 50.0


def is_flood_prone(zone: str) -> bool:
    return any(marker in zone for marker in ("Yamuna", "East", "Floodplain"))


def derive_zone_forecasts(
    rain_probability: float,
    expected_rainfall: float,
    zones: Sequence[str] = DELHI_ZONES,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """Spread one reading over every zone with a bounded random variation."""
    rng = rng or random.Random()
    forecasts = []
    for zone in zones:
        multiplier = FLOOD_PRONE_MULTIPLIER if is_flood_prone(zone) else 1.0
        variation = rng.uniform(0.9, 1.1)
        rain_prob = min(100, round(rain_probability * variation))
        rain_amount = max(0.0, round(expected_rainfall * variation, 1))
        base_risk = min(1.0, rain_amount / MAX_RISK_RAINFALL_MM)
        forecasts.append(
            {
                "zone": zone,
                "rainProb": rain_prob,
                "rainAmount": rain_amount,
                "riskScore": round(min(1.0, base_risk * multiplier), 2),
                "source": "Open-Meteo",
                "timestamp": utc_now_iso(),
            }
        )
    return forecasts


def fallback_forecasts(
    zones: Sequence[str] = DELHI_ZONES,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """Self-contained forecast set used when the upstream API is unavailable."""
    rng = rng or random.Random()
    forecasts = []
    for zone in zones:
        base_risk = 0.7 if ("Yamuna" in zone or "East" in zone) else 0.4
        rain_prob = rng.uniform(65, 95)
        rain_amount = rng.uniform(12, 40)
        risk_score = min(1.0, base_risk + rain_amount / 100 + rng.uniform(0, 0.2))
        forecasts.append(
            {
                "zone": zone,
                "rainProb": round(rain_prob),
                "rainAmount": round(rain_amount, 1),
                "riskScore": round(risk_score, 2),
                "source": "fallback",
                "timestamp": utc_now_iso(),
            }
        )
    return forecasts


class WeatherAgent(Agent):
    """Fetches the reference forecast and fans it out across the city zones."""

    def __init__(
        self,
        bus: TraceBus,
        forecast_client: Optional[OpenMeteoClient] = None,
        *,
        zones: Sequence[str] = DELHI_ZONES,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(
            AgentDescriptor(agent_id="A1", config=AgentConfig(name="Weather Agent", role="weather")),
            bus,
        )
        self._forecast_client = forecast_client or OpenMeteoClient()
        self._zones = tuple(zones)
        self._rng = rng or random.Random()

    async def execute(self, context: AgentContext, correlation_id: str) -> Dict[str, Any]:
        result: Dict[str, Any] = {"agent": self.agent_id, "correlationId": correlation_id}
        try:
            reading = await self._forecast_client.fetch_reading()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Weather forecast unavailable, using fallback", agent=self.agent_id, error=str(exc))
            result.update(forecasts=fallback_forecasts(self._zones, self._rng), fallback=True)
        else:
            result.update(
                forecasts=derive_zone_forecasts(
                    reading.rain_probability, reading.expected_rainfall, self._zones, self._rng
                ),
                source="Open-Meteo API",
            )
        result["timestamp"] = utc_now_iso()
        return result
