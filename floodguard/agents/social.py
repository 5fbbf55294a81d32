"""A3 - social media agent: AI-generated flood chatter with a template fallback."""
from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

import structlog

from floodguard.agents.llm_agent import LLMAgent
from floodguard.core.models import AgentConfig, AgentContext, AgentDescriptor, utc_now_iso
from floodguard.core.schemas import SocialPosts
from floodguard.core.trace import TraceBus
from floodguard.services.llm_pool import LLMPool

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a social media monitoring AI. Generate realistic flood-related posts that "
    "sound like real people tweeting during a flood event. Always respond with valid JSON only."
)

FALLBACK_LOCATIONS = ("ITO", "Yamuna Bank", "Najafgarh", "Minto Bridge", "Anand Vihar", "Kashmere Gate")
FALLBACK_USERS = ("@delhi_citizen", "@yamuna_watch", "@flood_alert_ncr", "@weather_delhi", "@ncr_updates")


def build_prompt(zone: str, count: int) -> str:
    return f"""Generate {count} realistic social media posts (like Twitter/X) about flooding or weather in {zone}, Delhi during monsoon season.

Mix of:
- Urgent flood warnings (high risk) - 30%
- Waterlogging reports - 30%
- Weather observations - 20%
- Normal rain updates (low risk) - 20%

Include realistic usernames, authentic Delhi locations (ITO, Yamuna, Najafgarh, Minto Bridge),
hashtags such as #DelhiFloods and #DelhiRains, and varied informal tone.

Return JSON: {{"posts": [{{"text": "...", "user": "@handle", "riskFlag": 0 or 1, "sentiment": "urgent|concerned|neutral"}}]}}
Respond ONLY with valid JSON."""


def fallback_posts(zone: str, count: int, rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
    """Template posts with the same shape as the generated ones."""
    rng = rng or random.Random()
    posts = []
    for _ in range(max(0, count)):
        high_risk = rng.random() > 0.6
        location = rng.choice(FALLBACK_LOCATIONS)
        if high_risk:
            text = f"Severe waterlogging at {location}! Water entering homes. Need immediate help #DelhiFloods #Emergency"
        else:
            text = f"Light rain at {location}, roads clear for now #DelhiRains #Monsoon"
        posts.append(
            {
                "text": text,
                "user": rng.choice(FALLBACK_USERS),
                "zone": zone,
                "platform": "social_media",
                "riskFlag": 1 if high_risk else 0,
                "sentiment": "urgent" if high_risk else "neutral",
                "timestamp": utc_now_iso(),
            }
        )
    return posts


class SocialAgent(LLMAgent):
    """Produces social media style signals for the monitored zone."""

    def __init__(
        self,
        bus: TraceBus,
        llm_pool: Optional[LLMPool] = None,
        *,
        model: str = "default",
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(
            AgentDescriptor(
                agent_id="A3",
                config=AgentConfig(name="Social Media Agent", role="social", metadata={"model": model}),
            ),
            bus,
            llm_pool,
        )
        self._rng = rng or random.Random()

    async def execute(self, context: AgentContext, correlation_id: str) -> Dict[str, Any]:
        zone = context.zone_label
        count = int(context.params.get("soc") or 5)

        try:
            generated = await self.ask(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(zone, count)},
                ],
                SocialPosts,
                "social_posts",
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Social generation unavailable, using templates", agent=self.agent_id, error=str(exc))
            posts = fallback_posts(zone, count, self._rng)
            source = "fallback"
        else:
            posts = [
                {
                    **post.model_dump(by_alias=True),
                    "zone": zone,
                    "platform": "social_media",
                    "timestamp": utc_now_iso(),
                }
                for post in generated.posts
            ]
            source = "ai_generated"

        return {
            "agent": self.agent_id,
            "zone": zone,
            "posts": posts,
            "totalPosts": len(posts),
            "highRiskCount": sum(1 for p in posts if p["riskFlag"] == 1),
            "source": source,
            "timestamp": utc_now_iso(),
            "correlationId": correlation_id,
        }
