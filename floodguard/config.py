"""Configuration management for the orchestrator."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


@dataclass(frozen=True)
class AzureOpenAIConfig:
    """Azure OpenAI service configuration."""

    api_key: str
    endpoint: str
    api_version: str = "2024-08-01-preview"
    deployment_name: str = "gpt-4o"
    max_concurrent: int = 50


@dataclass(frozen=True)
class OpenAICompatibleConfig:
    """Any OpenAI-compatible chat endpoint (Gemini is the default)."""

    api_key: str
    model: str = "gemini-1.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    max_concurrent: int = 10


@dataclass(frozen=True)
class MongoConfig:
    uri: str
    db_name: str = "floodguard"


@dataclass(frozen=True)
class ForecastConfig:
    """Open-Meteo request settings for the fixed reference point."""

    url: str = "https://api.open-meteo.com/v1/forecast"
    latitude: float = 28.65
    longitude: float = 77.23
    elevation: float = 215
    timezone: str = "Asia/Kolkata"
    timeout: float = 10.0


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    azure_openai: Optional[AzureOpenAIConfig] = None
    openai_compatible: Optional[OpenAICompatibleConfig] = None
    mongo: Optional[MongoConfig] = None
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    llm_model: str = "default"
    trace_max_size: int = 200
    trace_simulate_latency: bool = True
    loop_interval_ms: int = 15000
    loop_single_flight: bool = False
    phase_timeout: Optional[float] = None
    log_level: str = "INFO"
    log_format: str = "json"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        azure_key = os.getenv("AZURE_OPENAI_KEY")
        azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")

        azure_config = None
        if azure_key and azure_endpoint:
            azure_config = AzureOpenAIConfig(
                api_key=azure_key,
                endpoint=azure_endpoint,
                api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-08-01-preview"),
                deployment_name=os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o"),
                max_concurrent=int(os.getenv("AZURE_OPENAI_MAX_CONCURRENT", "50")),
            )

        compatible_config = None
        gemini_key = os.getenv("GEMINI_API_KEY")
        if gemini_key:
            compatible_config = OpenAICompatibleConfig(
                api_key=gemini_key,
                model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
                base_url=os.getenv(
                    "GEMINI_BASE_URL",
                    "https://generativelanguage.googleapis.com/v1beta/openai/",
                ),
            )

        mongo_config = None
        mongo_uri = os.getenv("MONGODB_URI") or os.getenv("DATABASE_URL")
        if mongo_uri:
            mongo_config = MongoConfig(
                uri=mongo_uri,
                db_name=os.getenv("MONGODB_DB_NAME", "floodguard"),
            )

        forecast_config = ForecastConfig(
            url=os.getenv("OPEN_METEO_URL", "https://api.open-meteo.com/v1/forecast"),
            timeout=float(os.getenv("FORECAST_TIMEOUT", "10")),
        )

        phase_timeout = os.getenv("PHASE_TIMEOUT")

        return cls(
            azure_openai=azure_config,
            openai_compatible=compatible_config,
            mongo=mongo_config,
            forecast=forecast_config,
            llm_model=os.getenv("LLM_MODEL", "default"),
            trace_max_size=int(os.getenv("TRACE_MAX_SIZE", "200")),
            trace_simulate_latency=_env_bool("TRACE_SIMULATE_LATENCY", True),
            loop_interval_ms=int(os.getenv("LOOP_INTERVAL_MS", "15000")),
            loop_single_flight=_env_bool("LOOP_SINGLE_FLIGHT", False),
            phase_timeout=float(phase_timeout) if phase_timeout else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
            environment=os.getenv("ENVIRONMENT", "development"),
        )


# Global config instance
config = Config.from_env()
