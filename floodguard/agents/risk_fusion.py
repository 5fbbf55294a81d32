"""A4 - risk fusion agent: combines weather, incident and social signals."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from floodguard.agents.llm_agent import LLMAgent
from floodguard.core.models import AgentConfig, AgentContext, AgentDescriptor, utc_now_iso
from floodguard.core.schemas import RiskVerdict
from floodguard.core.trace import TraceBus
from floodguard.services.llm_pool import LLMPool

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = "You are a flood risk analysis AI. Always respond with valid JSON only."

WEATHER_WEIGHT = 0.4
INCIDENT_WEIGHT = 0.3
SOCIAL_WEIGHT = 0.3


def extract_records(data: Any, key: str) -> List[Dict[str, Any]]:
    """Accept either a bare list or a phase-1 agent result holding it under ``key``."""
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, (list, tuple)):
        return []
    return [record for record in data if isinstance(record, dict)]


def risk_tier(score: float) -> str:
    if score > 0.7:
        return "HIGH"
    if score > 0.4:
        return "MEDIUM"
    return "SAFE"


def fallback_risk_assessment(weather: Any, incidents: Any, social: Any) -> Dict[str, Any]:
    """Deterministic weighted average used when the reasoning service is unavailable."""
    forecasts = extract_records(weather, "forecasts")
    incident_list = extract_records(incidents, "incidents")
    posts = extract_records(social, "posts")

    mean_rain_prob = (
        sum(float(f.get("rainProb") or 0) for f in forecasts) / len(forecasts) / 100
        if forecasts
        else 0.0
    )
    incident_factor = min(len(incident_list) / 10, 1.0)
    social_factor = min(len(posts) / 5, 1.0)
    score = (
        WEATHER_WEIGHT * mean_rain_prob
        + INCIDENT_WEIGHT * incident_factor
        + SOCIAL_WEIGHT * social_factor
    )

    high_risk_zones = [
        f["zone"] for f in forecasts if float(f.get("rainProb") or 0) > 70 and f.get("zone")
    ][:3]

    return {
        "overallRiskScore": round(score, 2),
        "riskTier": risk_tier(score),
        "highRiskZones": high_risk_zones,
        "keyFactors": [
            f"{len(forecasts)} weather forecasts analyzed",
            f"{len(incident_list)} incidents reported",
            f"{len(posts)} social media signals",
        ],
        "confidence": 0.6,
        "reasoning": "Fallback calculation used (AI temporarily unavailable)",
    }


def build_prompt(weather: Any, incidents: Any, social: Any) -> str:
    return f"""You are an AI flood risk analyst for Delhi. Analyze the following data and provide a comprehensive risk assessment.

WEATHER DATA:
{LLMAgent.dump(weather)}

INCIDENT REPORTS:
{LLMAgent.dump(incidents)}

SOCIAL MEDIA SIGNALS:
{LLMAgent.dump(social)}

Respond with JSON containing overallRiskScore (0.0-1.0), riskTier (SAFE|MEDIUM|HIGH),
highRiskZones, keyFactors, confidence (0.0-1.0) and a brief reasoning.

Consider rainfall probability and amount, number and severity of incidents, urgency of
social posts, Delhi monsoon history, drain capacity and known flood-prone areas.

Respond ONLY with valid JSON, no other text."""


class RiskFusionAgent(LLMAgent):
    """Fuses phase-1 outputs into one risk verdict."""

    def __init__(self, bus: TraceBus, llm_pool: Optional[LLMPool] = None, *, model: str = "default") -> None:
        super().__init__(
            AgentDescriptor(
                agent_id="A4",
                config=AgentConfig(
                    name="Risk Fusion Agent",
                    role="risk_fusion",
                    metadata={"model": model, "temperature": 0.3},
                ),
            ),
            bus,
            llm_pool,
        )

    async def execute(self, context: AgentContext, correlation_id: str) -> Dict[str, Any]:
        weather = context.params.get("weatherData")
        incidents = context.params.get("incidentData")
        social = context.params.get("socialData")

        try:
            verdict = await self.ask(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(weather, incidents, social)},
                ],
                RiskVerdict,
                "risk_assessment",
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Risk reasoning unavailable, using weighted fallback", agent=self.agent_id, error=str(exc))
            assessment = fallback_risk_assessment(weather, incidents, social)
            assessment["source"] = "fallback"
        else:
            assessment = verdict.model_dump(by_alias=True)
            assessment["source"] = "ai"

        assessment.update(agent=self.agent_id, correlationId=correlation_id, timestamp=utc_now_iso())
        return assessment
