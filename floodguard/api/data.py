"""Access to persisted cycle artifacts and citizen incident reports."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from floodguard.core.errors import PersistenceError
from floodguard.runtime import get_repository
from floodguard.services import storage
from floodguard.services.storage import CycleRepository

router = APIRouter(prefix="/data", tags=["data"])

_COLLECTIONS = {
    "forecasts": storage.FORECASTS,
    "incidents": storage.INCIDENTS,
    "social": storage.SOCIAL_POSTS,
    "alerts": storage.ALERTS,
    "risk": storage.RISK_ASSESSMENTS,
}


class IncidentReport(BaseModel):
    """Incident submitted by a drain inspector or a citizen."""

    model_config = ConfigDict(populate_by_name=True)

    zone: str = Field(min_length=1)
    type: Literal["drain", "citizen"]
    description: str = Field(min_length=1)
    location_name: Optional[str] = Field(None, alias="locationName", min_length=1)
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@router.post("/incidents", status_code=status.HTTP_201_CREATED)
async def report_incident(
    report: IncidentReport,
    repository: CycleRepository = Depends(get_repository),
) -> Dict[str, Any]:
    try:
        await repository.save_incident(report.to_document())
    except PersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {"success": True}


@router.get("/{kind}")
async def list_documents(
    kind: str,
    limit: int = Query(100, ge=1, le=1000),
    repository: CycleRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    if kind not in _COLLECTIONS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown data kind '{kind}'")
    try:
        return await repository.list_recent(_COLLECTIONS[kind], limit=limit)
    except PersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
