"""A6 - communications agent: public and operations alerts for a risk verdict."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from floodguard.agents.llm_agent import LLMAgent
from floodguard.core.models import AgentConfig, AgentContext, AgentDescriptor, utc_now_iso
from floodguard.core.schemas import GeneratedAlerts
from floodguard.core.trace import TraceBus
from floodguard.services.llm_pool import LLMPool

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an emergency communications AI. Generate clear, actionable flood alerts. "
    "Always respond with valid JSON only."
)

TEMPLATES: Dict[str, Dict[str, Any]] = {
    "HIGH": {
        "public": "HIGH ALERT: Severe flood risk in {zone}. Evacuate low-lying areas immediately. Avoid all travel.",
        "ops": "URGENT: Deploy emergency pumps in {zone}. Activate evacuation protocols. Traffic diversions required.",
        "actions": ["Deploy emergency pumps", "Activate evacuation", "Set up traffic diversions"],
        "tone": "urgent",
    },
    "MEDIUM": {
        "public": "MEDIUM ALERT: Waterlogging expected in {zone}. Avoid unnecessary travel. Monitor updates.",
        "ops": "Deploy maintenance teams to {zone}. Clear drains. Prepare emergency equipment.",
        "actions": ["Clear drains", "Deploy maintenance teams", "Prepare emergency equipment"],
        "tone": "cautious",
    },
    "SAFE": {
        "public": "SAFE: {zone} showing low flood risk. Normal precautions advised.",
        "ops": "Routine monitoring in {zone}. Keep emergency teams on standby.",
        "actions": ["Routine monitoring", "Standby mode"],
        "tone": "informative",
    },
}


def fallback_alerts(risk_tier: str, zone: str) -> Dict[str, Dict[str, Any]]:
    """Pick the fixed template for ``risk_tier``; unknown tiers use MEDIUM."""
    template = TEMPLATES.get(risk_tier, TEMPLATES["MEDIUM"])
    return {
        "publicAlert": {"message": template["public"].format(zone=zone), "tone": template["tone"]},
        "opsAlert": {"message": template["ops"].format(zone=zone), "actions": list(template["actions"])},
    }


def build_prompt(zone: str, risk_tier: str, risk_score: float, reasoning: str) -> str:
    return f"""You are an emergency communications AI for flood alerts in {zone}, Delhi.

Risk Assessment:
- Risk Tier: {risk_tier}
- Risk Score: {risk_score:.2f}
- Analysis: {reasoning}

Generate TWO alerts in JSON format:
{{"publicAlert": {{"message": "...", "tone": "urgent|cautious|informative"}},
  "opsAlert": {{"message": "...", "actions": ["...", "..."]}}}}

Guidelines:
- HIGH risk: urgent tone, evacuation warnings, emergency actions
- MEDIUM risk: cautionary tone, avoid travel, prepare teams
- SAFE: informative tone, normal monitoring, routine checks

Respond ONLY with valid JSON."""


class CommsAgent(LLMAgent):
    """Generates alerts for operations teams and the public."""

    def __init__(self, bus: TraceBus, llm_pool: Optional[LLMPool] = None, *, model: str = "default") -> None:
        super().__init__(
            AgentDescriptor(
                agent_id="A6",
                config=AgentConfig(name="Communications Agent", role="comms", metadata={"model": model}),
            ),
            bus,
            llm_pool,
        )

    async def execute(self, context: AgentContext, correlation_id: str) -> Dict[str, Any]:
        zone = context.zone_label
        assessment = context.params.get("riskAssessment") or {}
        tier = assessment.get("riskTier") or "MEDIUM"
        score = float(assessment.get("overallRiskScore") or 0.5)
        reasoning = assessment.get("reasoning") or "Risk assessment pending"

        result: Dict[str, Any] = {"agent": self.agent_id, "zone": zone, "riskTier": tier}
        try:
            generated = await self.ask(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(zone, tier, score, reasoning)},
                ],
                GeneratedAlerts,
                "alerts",
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Alert generation unavailable, using templates", agent=self.agent_id, error=str(exc))
            messages = fallback_alerts(tier, zone)
            result["fallback"] = True
        else:
            messages = generated.model_dump(by_alias=True)

        public, ops = messages["publicAlert"], messages["opsAlert"]
        alerts: List[Dict[str, Any]] = [
            {"audience": "public", "message": public["message"], "riskTier": tier, "tone": public["tone"]},
            {"audience": "ops", "message": ops["message"], "riskTier": tier, "actions": ops["actions"]},
        ]
        result.update(
            alerts=alerts,
            publicAlert=public,
            opsAlert=ops,
            timestamp=utc_now_iso(),
            correlationId=correlation_id,
        )
        return result
