"""Pydantic models describing the structured output requested from the LLM."""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

RiskTier = Literal["SAFE", "MEDIUM", "HIGH"]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class GeneratedPost(_StrictModel):
    text: str
    user: str
    risk_flag: int = Field(alias="riskFlag")
    sentiment: str

    @field_validator("risk_flag")
    @classmethod
    def _binary_flag(cls, value: int) -> int:
        if value not in (0, 1):
            raise ValueError("riskFlag must be 0 or 1")
        return value


class SocialPosts(_StrictModel):
    posts: List[GeneratedPost]


class RiskVerdict(_StrictModel):
    overall_risk_score: float = Field(alias="overallRiskScore")
    risk_tier: RiskTier = Field(alias="riskTier")
    high_risk_zones: List[str] = Field(alias="highRiskZones")
    key_factors: List[str] = Field(alias="keyFactors")
    confidence: float
    reasoning: str

    @field_validator("overall_risk_score", "confidence")
    @classmethod
    def _unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("must be between 0 and 1")
        return value


class PublicAlert(_StrictModel):
    message: str
    tone: str


class OpsAlert(_StrictModel):
    message: str
    actions: List[str]


class GeneratedAlerts(_StrictModel):
    public_alert: PublicAlert = Field(alias="publicAlert")
    ops_alert: OpsAlert = Field(alias="opsAlert")
