"""HTTP surface tests using FastAPI's TestClient with dependency overrides."""
from __future__ import annotations

import random
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import mock_database
from floodguard.main import app
from floodguard.orchestration.orchestrator import Orchestrator
from floodguard.runtime import get_orchestrator, get_repository, get_water_levels
from floodguard.services import storage
from floodguard.services.storage import CycleRepository
from floodguard.services.water_levels import MOCK_SENSORS, WaterLevelRegistry


@pytest.fixture
def client(fallback_orchestrator: Orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: fallback_orchestrator
    with TestClient(app) as test_client:
        yield test_client
    fallback_orchestrator.stop_loop()
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_run_cycle_and_drain_trace(client: TestClient) -> None:
    response = client.post("/ops/run", json={"inc": 2, "soc": 1, "lat": 28.62, "lon": 77.25, "location": "ITO"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["results"]["incidents"]["zone"] == "ITO"
    assert body["results"]["incidents"]["totalIncidents"] == 2

    trace = client.get("/ops/trace").json()
    assert len(trace) == 10
    assert {entry["env"]["correlationId"] for entry in trace} == {body["correlationId"]}
    assert trace[0]["dir"] == "→"
    assert client.get("/ops/trace").json() == []
    assert client.get("/ops/trace/recent", params={"count": 5}).json() == []


def test_location_requires_both_coordinates(client: TestClient) -> None:
    body = client.post("/ops/run", json={"lat": 28.6}).json()
    assert body["results"]["incidents"]["zone"] == "Delhi"


def test_loop_lifecycle(client: TestClient) -> None:
    assert client.get("/ops/loop/status").json()["is_running"] is False

    started = client.post("/ops/loop/start", json={"interval_ms": 60000})
    assert started.status_code == 200
    assert started.json()["interval_ms"] == 60000
    assert client.get("/ops/loop/status").json()["is_running"] is True

    assert client.post("/ops/loop/start", json={"interval_ms": 60000}).status_code == 409

    assert client.post("/ops/loop/stop").json()["success"] is True
    assert client.post("/ops/loop/stop").json()["success"] is True
    assert client.get("/ops/loop/status").json() == {"is_running": False, "active_cycles": {}, "last_phase": "DONE"}


def test_list_agents(client: TestClient) -> None:
    client.post("/ops/run", json={})
    agents = {agent["agent_id"]: agent for agent in client.get("/agents").json()}

    assert set(agents) == {"A1", "A2", "A3", "A4", "A6"}
    assert all(agent["state"] == "IDLE" for agent in agents.values())
    assert all(agent["task_count"] == 1 for agent in agents.values())


def test_data_endpoint_reads_recent_documents(client: TestClient) -> None:
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[{"_id": 1, "audience": "ops", "message": "Clear drains"}])
    collection = MagicMock()
    collection.find.return_value = cursor
    db = MagicMock()
    db.__getitem__.return_value = collection
    app.dependency_overrides[get_repository] = lambda: CycleRepository(db=db)

    response = client.get("/data/alerts", params={"limit": 5})

    assert response.status_code == 200
    assert response.json() == [{"_id": "1", "audience": "ops", "message": "Clear drains"}]
    cursor.sort.assert_called_once_with("createdAt", -1)
    cursor.limit.assert_called_once_with(5)
    assert client.get("/data/unknown").status_code == 404


def test_cycle_counts_must_be_positive(client: TestClient) -> None:
    assert client.post("/ops/run", json={"inc": 0}).status_code == 422
    assert client.post("/ops/run", json={"soc": 0}).status_code == 422


def test_report_incident_saves_document(client: TestClient) -> None:
    db, collections = mock_database()
    app.dependency_overrides[get_repository] = lambda: CycleRepository(db=db)

    response = client.post(
        "/data/incidents",
        json={"zone": "Yamuna Bank", "type": "citizen", "description": "Water entering homes", "latitude": 28.62},
    )

    assert response.status_code == 201
    assert response.json() == {"success": True}
    insert = collections[storage.INCIDENTS].insert_one
    insert.assert_awaited_once()
    document = insert.await_args.args[0]
    assert document["zone"] == "Yamuna Bank"
    assert document["type"] == "citizen"
    assert document["locationName"] is None
    assert document["latitude"] == 28.62
    assert document["longitude"] is None
    assert document["timestamp"] is not None


def test_report_incident_validates_input(client: TestClient) -> None:
    valid = {"zone": "Rohini", "type": "drain", "description": "Blocked drain"}

    assert client.post("/data/incidents", json={**valid, "type": "rumour"}).status_code == 422
    assert client.post("/data/incidents", json={**valid, "description": ""}).status_code == 422
    assert client.post("/data/incidents", json={**valid, "locationName": ""}).status_code == 422
    assert client.post("/data/incidents", json={"type": "drain", "description": "x"}).status_code == 422


def test_report_incident_store_failure(client: TestClient) -> None:
    db, _ = mock_database(fail_on=(storage.INCIDENTS,))
    app.dependency_overrides[get_repository] = lambda: CycleRepository(db=db)

    response = client.post("/data/incidents", json={"zone": "Rohini", "type": "drain", "description": "Overflow"})

    assert response.status_code == 503


@pytest.fixture
def registry(client: TestClient) -> WaterLevelRegistry:
    water_levels = WaterLevelRegistry(rng=random.Random(5))
    app.dependency_overrides[get_water_levels] = lambda: water_levels
    return water_levels


def test_water_level_above_danger_raises_alert(client: TestClient, registry: WaterLevelRegistry) -> None:
    response = client.post(
        "/iot/water-levels",
        json={
            "sensorId": "yamuna-ito-001",
            "location": "Yamuna at ITO Bridge",
            "latitude": 28.6289,
            "longitude": 77.2065,
            "waterLevel": 205.5,
            "dangerLevel": 204.5,
            "timestamp": "2025-11-13T10:30:00Z",
        },
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["alert"] == {
        "level": "HIGH",
        "message": "Water level (205.5m) exceeds danger threshold (204.5m) at Yamuna at ITO Bridge",
    }
    assert body["reading"]["timestamp"] == "2025-11-13T10:30:00+00:00"
    assert body["reading"]["receivedAt"]


def test_water_level_without_threshold_has_no_alert(client: TestClient, registry: WaterLevelRegistry) -> None:
    reading = {"sensorId": "s-1", "location": "Okhla", "latitude": 28.5, "longitude": 77.3, "waterLevel": 999.0}

    assert client.post("/iot/water-levels", json=reading).json()["alert"] is None
    below = {**reading, "sensorId": "s-2", "dangerLevel": 1000.0}
    assert client.post("/iot/water-levels", json=below).json()["alert"] is None


def test_water_levels_listing_and_lookup(client: TestClient, registry: WaterLevelRegistry) -> None:
    assert client.get("/iot/water-levels").json() == {"count": 0, "readings": [], "lastUpdated": None}

    base = {"location": "Okhla", "latitude": 28.5, "longitude": 77.3, "waterLevel": 1.2}
    client.post("/iot/water-levels", json={**base, "sensorId": "old", "timestamp": "2025-11-13T08:00:00Z"})
    client.post("/iot/water-levels", json={**base, "sensorId": "new", "timestamp": "2025-11-13T09:00:00Z"})
    client.post("/iot/water-levels", json={**base, "sensorId": "old", "timestamp": "2025-11-13T07:00:00Z"})

    listing = client.get("/iot/water-levels").json()
    assert listing["count"] == 2
    assert [r["sensorId"] for r in listing["readings"]] == ["new", "old"]
    assert listing["lastUpdated"] == "2025-11-13T09:00:00+00:00"

    assert client.get("/iot/water-levels/new").json()["sensorId"] == "new"
    missing = client.get("/iot/water-levels/ghost")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "No reading found for sensor: ghost"


def test_generate_mock_water_levels(client: TestClient, registry: WaterLevelRegistry) -> None:
    body = client.post("/iot/water-levels/mock").json()

    assert body["success"] is True
    readings = {r["sensorId"]: r for r in body["readings"]}
    assert set(readings) == {sensor[0] for sensor in MOCK_SENSORS}
    for reading in readings.values():
        assert reading["mock"] is True
        assert abs(reading["waterLevel"] - reading["dangerLevel"]) <= 1.0
    assert client.get("/iot/water-levels").json()["count"] == len(MOCK_SENSORS)


def test_shutdown_leaves_unbuilt_runtime_alone(fallback_orchestrator: Orchestrator) -> None:
    get_orchestrator.cache_clear()
    get_repository.cache_clear()
    app.dependency_overrides[get_orchestrator] = lambda: fallback_orchestrator
    try:
        with TestClient(app) as test_client:
            assert test_client.post("/ops/loop/start", json={"interval_ms": 60000}).status_code == 200
        assert fallback_orchestrator.is_loop_running() is False
        assert get_orchestrator.cache_info().currsize == 0
        assert get_repository.cache_info().currsize == 0
    finally:
        app.dependency_overrides.clear()
