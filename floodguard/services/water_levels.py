"""In-memory registry of the latest water level reported by each river or drain sensor."""
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

# Gauges along the Yamuna and the Najafgarh drain, danger levels in metres
MOCK_SENSORS = (
    ("yamuna-ito-001", "Yamuna at ITO Bridge", 28.6289, 77.2065, 204.5),
    ("yamuna-wazirabad-001", "Yamuna at Wazirabad Barrage", 28.7196, 77.2294, 203.0),
    ("najafgarh-drain-001", "Najafgarh Drain", 28.6092, 77.0432, 2.5),
)


@dataclass(slots=True)
class WaterLevelReading:
    sensor_id: str
    location: str
    latitude: float
    longitude: float
    water_level: float
    danger_level: Optional[float] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    mock: bool = False

    @property
    def is_dangerous(self) -> bool:
        # a missing or zero threshold never raises an alert
        return bool(self.danger_level) and self.water_level > self.danger_level

    def alert(self) -> Optional[Dict[str, str]]:
        if not self.is_dangerous:
            return None
        return {
            "level": "HIGH",
            "message": (
                f"Water level ({self.water_level:g}m) exceeds danger threshold "
                f"({self.danger_level:g}m) at {self.location}"
            ),
        }

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sensorId": self.sensor_id,
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "waterLevel": self.water_level,
            "dangerLevel": self.danger_level,
            "timestamp": self.timestamp.isoformat(),
            "receivedAt": self.received_at.isoformat(),
        }
        if self.mock:
            payload["mock"] = True
        return payload


class WaterLevelRegistry:
    """Keep the most recent reading per sensor; a new reading replaces the old one."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._readings: Dict[str, WaterLevelReading] = {}
        self._lock = asyncio.Lock()
        self._rng = rng or random.Random()

    async def submit(self, reading: WaterLevelReading) -> Optional[Dict[str, str]]:
        """Store ``reading`` and return an alert when it is above its danger level."""
        if reading.timestamp.tzinfo is None:
            reading.timestamp = reading.timestamp.replace(tzinfo=timezone.utc)
        async with self._lock:
            self._readings[reading.sensor_id] = reading
        alert = reading.alert()
        log = logger.bind(sensor_id=reading.sensor_id, location=reading.location, water_level=reading.water_level)
        if alert is not None:
            log.warning("Water level above danger threshold", danger_level=reading.danger_level)
        else:
            log.info("Water level received")
        return alert

    async def get(self, sensor_id: str) -> Optional[WaterLevelReading]:
        async with self._lock:
            return self._readings.get(sensor_id)

    async def latest(self) -> List[WaterLevelReading]:
        """All stored readings, newest sensor timestamp first."""
        async with self._lock:
            readings = list(self._readings.values())
        return sorted(readings, key=lambda reading: reading.timestamp, reverse=True)

    async def generate_mock(self) -> List[WaterLevelReading]:
        """Store a reading within a metre of each mock gauge's danger level."""
        readings = []
        for sensor_id, location, latitude, longitude, danger_level in MOCK_SENSORS:
            reading = WaterLevelReading(
                sensor_id=sensor_id,
                location=location,
                latitude=latitude,
                longitude=longitude,
                water_level=round(danger_level + self._rng.uniform(-1.0, 1.0), 2),
                danger_level=danger_level,
                mock=True,
            )
            async with self._lock:
                self._readings[sensor_id] = reading
            readings.append(reading)
        logger.info("Generated mock water level data", sensors=len(readings))
        return readings
