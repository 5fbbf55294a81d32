"""Routes receiving water level readings from IoT gauges."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from floodguard.runtime import get_water_levels
from floodguard.services.water_levels import WaterLevelReading, WaterLevelRegistry

router = APIRouter(prefix="/iot", tags=["iot"])


class WaterLevelInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sensor_id: str = Field(alias="sensorId", min_length=1)
    location: str
    latitude: float
    longitude: float
    water_level: float = Field(alias="waterLevel", description="Water level in metres")
    danger_level: Optional[float] = Field(None, alias="dangerLevel", description="Danger threshold in metres")
    timestamp: Optional[datetime] = None

    def to_reading(self) -> WaterLevelReading:
        reading = WaterLevelReading(
            sensor_id=self.sensor_id,
            location=self.location,
            latitude=self.latitude,
            longitude=self.longitude,
            water_level=self.water_level,
            danger_level=self.danger_level,
        )
        if self.timestamp is not None:
            reading.timestamp = self.timestamp
        return reading


@router.post("/water-levels")
async def submit_water_level(
    payload: WaterLevelInput,
    registry: WaterLevelRegistry = Depends(get_water_levels),
) -> Dict[str, Any]:
    reading = payload.to_reading()
    alert = await registry.submit(reading)
    return {"success": True, "reading": reading.to_dict(), "alert": alert}


@router.get("/water-levels")
async def list_water_levels(registry: WaterLevelRegistry = Depends(get_water_levels)) -> Dict[str, Any]:
    readings = await registry.latest()
    return {
        "count": len(readings),
        "readings": [reading.to_dict() for reading in readings],
        "lastUpdated": readings[0].timestamp.isoformat() if readings else None,
    }


@router.post("/water-levels/mock")
async def generate_mock_data(registry: WaterLevelRegistry = Depends(get_water_levels)) -> Dict[str, Any]:
    """Populate every mock gauge, for exercising the dashboard without real sensors."""
    readings = await registry.generate_mock()
    return {
        "success": True,
        "readings": [reading.to_dict() for reading in readings],
        "message": "Mock data generated successfully",
    }


@router.get("/water-levels/{sensor_id}")
async def get_sensor_reading(
    sensor_id: str,
    registry: WaterLevelRegistry = Depends(get_water_levels),
) -> Dict[str, Any]:
    reading = await registry.get(sensor_id)
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No reading found for sensor: {sensor_id}",
        )
    return reading.to_dict()
