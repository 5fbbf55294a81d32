"""Open-Meteo client used by the weather agent."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Optional

import httpx
import structlog

from floodguard.config import ForecastConfig
from floodguard.core.errors import UpstreamUnavailableError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ForecastReading:
    """Single upstream reading for the reference point."""

    rain_probability: float
    expected_rainfall: float


class OpenMeteoClient:
    """Fetches today's precipitation outlook for one fixed coordinate."""

    def __init__(
        self,
        config: Optional[ForecastConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ForecastConfig()
        self._transport = transport

    def build_params(self, today: Optional[date] = None) -> Dict[str, str]:
        today = today or date.today()
        return {
            "latitude": str(self.config.latitude),
            "longitude": str(self.config.longitude),
            "daily": "precipitation_sum,precipitation_probability_max,precipitation_probability_mean",
            "hourly": "rain,precipitation_probability",
            "current": "rain,precipitation",
            "timezone": self.config.timezone,
            "elevation": str(self.config.elevation),
            "start_date": today.isoformat(),
            "end_date": (today + timedelta(days=3)).isoformat(),
        }

    async def fetch_reading(self) -> ForecastReading:
        """Return the reading, raising ``UpstreamUnavailableError`` on any failure."""
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.config.url, params=self.build_params())
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError(f"Open-Meteo request failed: {exc}") from exc

        return parse_reading(data)


def parse_reading(data: Dict[str, Any]) -> ForecastReading:
    """Reduce an Open-Meteo payload to one probability and one rainfall figure."""
    if not isinstance(data, dict):
        raise UpstreamUnavailableError("Open-Meteo returned a non-object payload")

    daily = data.get("daily") or {}
    try:
        precipitation_sum = _first(daily.get("precipitation_sum"))
        prob_max = _first(daily.get("precipitation_probability_max"))
        prob_mean = _first(daily.get("precipitation_probability_mean"))

        expected_rainfall = precipitation_sum
        hourly_rain = (data.get("hourly") or {}).get("rain")
        if expected_rainfall == 0 and hourly_rain:
            # first 24 hourly values cover today
            expected_rainfall = sum(float(v or 0) for v in hourly_rain[:24])
    except (TypeError, ValueError) as exc:
        raise UpstreamUnavailableError(f"Malformed Open-Meteo payload: {exc}") from exc

    reading = ForecastReading(
        rain_probability=max(prob_max, prob_mean),
        expected_rainfall=expected_rainfall,
    )
    logger.info(
        "Fetched weather reading",
        rain_probability=reading.rain_probability,
        expected_rainfall=reading.expected_rainfall,
    )
    return reading


def _first(values: Any) -> float:
    if not values:
        return 0.0
    return float(values[0] or 0)
