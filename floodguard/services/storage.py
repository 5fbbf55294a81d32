"""MongoDB persistence for the artifacts produced by each cycle."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from floodguard.config import MongoConfig
from floodguard.core.errors import PersistenceError

logger = structlog.get_logger(__name__)

FORECASTS = "forecasts"
INCIDENTS = "incidents"
SOCIAL_POSTS = "socialIncidents"
ALERTS = "alerts"
RISK_ASSESSMENTS = "riskAssessments"

SORT_FIELDS = {
    FORECASTS: "timestamp",
    INCIDENTS: "timestamp",
    SOCIAL_POSTS: "timestamp",
    ALERTS: "createdAt",
    RISK_ASSESSMENTS: "timestamp",
}


class CycleRepository:
    """Insert-only document store adapter.

    With no database configured every save is a no-op returning ``None``.
    Driver errors surface as :class:`PersistenceError` so callers decide how
    much of a cycle's output to keep.
    """

    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        client: Optional[AsyncIOMotorClient] = None,
    ) -> None:
        self._db = db
        self._client = client

    @classmethod
    def from_config(cls, config: Optional[MongoConfig]) -> CycleRepository:
        if config is None:
            logger.warning("MONGODB_URI not configured, database features disabled")
            return cls()
        client = AsyncIOMotorClient(config.uri)
        return cls(db=client[config.db_name], client=client)

    @property
    def enabled(self) -> bool:
        return self._db is not None

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    async def save_forecast(self, forecast: Mapping[str, Any]) -> Optional[Any]:
        return await self._insert(FORECASTS, forecast, "timestamp")

    async def save_incident(self, incident: Mapping[str, Any]) -> Optional[Any]:
        return await self._insert(INCIDENTS, incident, "timestamp")

    async def save_social_post(self, post: Mapping[str, Any]) -> Optional[Any]:
        return await self._insert(SOCIAL_POSTS, post, "timestamp")

    async def save_alert(self, alert: Mapping[str, Any]) -> Optional[Any]:
        return await self._insert(ALERTS, alert, "createdAt")

    async def save_risk_assessment(self, assessment: Mapping[str, Any]) -> Optional[Any]:
        return await self._insert(RISK_ASSESSMENTS, assessment, "timestamp")

    async def list_recent(self, collection: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Return the newest documents of ``collection``, newest first."""
        if collection not in SORT_FIELDS:
            raise KeyError(f"Unknown collection '{collection}'")
        if self._db is None:
            return []
        try:
            cursor = self._db[collection].find({}).sort(SORT_FIELDS[collection], DESCENDING).limit(limit)
            documents = await cursor.to_list(length=limit)
        except PyMongoError as exc:
            raise PersistenceError(collection, str(exc)) from exc
        for document in documents:
            if "_id" in document:
                document["_id"] = str(document["_id"])
        return documents

    async def _insert(
        self, collection: str, record: Mapping[str, Any], time_field: str
    ) -> Optional[Any]:
        if self._db is None:
            return None
        document = dict(record)
        if document.get(time_field) is None:
            document[time_field] = datetime.now(timezone.utc)
        try:
            result = await self._db[collection].insert_one(document)
        except PyMongoError as exc:
            raise PersistenceError(collection, str(exc)) from exc
        return result.inserted_id
