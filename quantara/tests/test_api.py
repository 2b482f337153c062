"""Tests for API endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport
from sqlalchemy import func, select

from quantara.api import get_service
from quantara.main import app
from quantara.service import WellnessService
from quantara.tables import Reading, User


def sync(client, **payload):
    payload.setdefault("device_id", "watch_a")
    response = client.post("/api/sync", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "quantara-watch"


def test_service_info(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "Quantara Watch API"
    assert "sync" in data["endpoints"]


def test_register_is_idempotent(client):
    """Registering the same device twice returns the same user."""
    first = client.post("/api/users/register", json={"device_id": "watch_a"}).json()
    second = client.post(
        "/api/users/register", json={"device_id": "watch_a", "name": "Other"}
    ).json()

    assert first["success"] is True
    assert first["user"]["id"] == second["user"]["id"]
    assert first["user"]["name"] == "Watch User"
    assert second["user"]["name"] == "Watch User"


def test_register_requires_device_id(client):
    response = client.post("/api/users/register", json={"device_id": ""})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_sync_creates_user_and_summary(client):
    """A first sync from a new device creates the user and rolls the reading up."""
    result = sync(
        client,
        timestamp="2024-03-15T08:00:00Z",
        heart_rate=72,
        hrv=55.0,
        steps=1200,
        active_energy=80.5,
        exercise_minutes=10,
        wellness_score=80,
    )
    assert result["success"] is True
    assert result["synced_at"] == "2024-03-15T12:00:00"
    user_id = result["user_id"]

    response = client.get(f"/api/summary/{user_id}", params={"date": "2024-03-15"})
    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2024-03-15"
    summary = data["summary"]
    assert summary["avg_heart_rate"] == 72
    assert summary["avg_hrv"] == 55.0
    assert summary["total_steps"] == 1200
    assert summary["total_calories"] == 80.5
    assert summary["total_exercise_minutes"] == 10
    assert summary["avg_wellness_score"] == 80
    assert summary["recovery_status"] == "good"
    assert data["heart_rate_zones"]["normal_minutes"] == 1


def test_sync_two_readings_same_day(client):
    """HR 70/80 and HRV 40/80 average to 75 and 60 ("good")."""
    first = sync(client, timestamp="2024-03-15T08:00:00Z", heart_rate=70, hrv=40, steps=3000)
    sync(client, timestamp="2024-03-15T09:00:00Z", heart_rate=80, hrv=80, steps=2500)

    data = client.get(f"/api/summary/{first['user_id']}", params={"date": "2024-03-15"}).json()
    summary = data["summary"]
    assert summary["avg_heart_rate"] == 75
    assert summary["avg_hrv"] == 60.0
    assert summary["recovery_status"] == "good"
    # Cumulative counters: the largest value is the day's total
    assert summary["total_steps"] == 3000
    assert data["heart_rate_zones"]["normal_minutes"] == 2


def test_sync_with_existing_user_id(client):
    user = client.post("/api/users/register", json={"device_id": "watch_a"}).json()["user"]
    result = sync(client, user_id=user["id"], device_id=None, heart_rate=65)
    assert result["user_id"] == user["id"]


def test_sync_without_identifiers_is_rejected(client):
    response = client.post("/api/sync", json={"heart_rate": 70})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["field"] == "user_id"


def test_sync_unknown_user_id_is_rejected(client):
    response = client.post("/api/sync", json={"user_id": "nope", "heart_rate": 70})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_sync_negative_metric_is_rejected(client):
    response = client.post("/api/sync", json={"device_id": "watch_a", "heart_rate": -1})
    assert response.status_code == 422
    errors = response.json()["error"]["details"]["errors"]
    assert errors[0]["field"] == "body.heart_rate"


def test_sync_wellness_score_above_100_is_rejected(client):
    response = client.post("/api/sync", json={"device_id": "watch_a", "wellness_score": 101})
    assert response.status_code == 422


def test_summary_for_date_without_data(client):
    """Unknown dates report null summary and zones, not an error."""
    result = sync(client, timestamp="2024-03-15T08:00:00Z", heart_rate=70)
    data = client.get(
        f"/api/summary/{result['user_id']}", params={"date": "2024-01-01"}
    ).json()
    assert data["success"] is True
    assert data["summary"] is None
    assert data["heart_rate_zones"] is None


def test_summary_defaults_to_today(client):
    result = sync(client, heart_rate=70)
    data = client.get(f"/api/summary/{result['user_id']}").json()
    assert data["date"] == "2024-03-15"
    assert data["summary"]["avg_heart_rate"] == 70


def test_batch_sync(client):
    """Test batch sync endpoint."""
    readings = [
        {"timestamp": f"2024-03-14T{hour:02d}:00:00Z", "heart_rate": 60 + hour, "steps": hour * 100}
        for hour in range(8, 12)
    ]
    response = client.post("/api/sync/batch", json={"device_id": "watch_a", "readings": readings})
    assert response.status_code == 200
    data = response.json()
    assert data["synced_count"] == 4

    listed = client.get(f"/api/biometrics/{data['user_id']}").json()
    assert listed["count"] == 4
    assert listed["readings"][0]["timestamp"] == "2024-03-14T11:00:00"


def test_batch_sync_empty(client):
    response = client.post("/api/sync/batch", json={"device_id": "watch_a", "readings": []})
    assert response.status_code == 200
    assert response.json()["synced_count"] == 0


def test_batch_then_recompute(client):
    """Batch sync leaves summaries alone until they are recomputed."""
    readings = [
        {"timestamp": "2024-03-13T08:00:00Z", "hrv": 70},
        {"timestamp": "2024-03-14T08:00:00Z", "hrv": 20},
    ]
    user_id = client.post(
        "/api/sync/batch", json={"device_id": "watch_a", "readings": readings}
    ).json()["user_id"]

    before = client.get(f"/api/summary/{user_id}", params={"date": "2024-03-13"}).json()
    assert before["summary"] is None

    response = client.post(f"/api/summary/{user_id}/recompute")
    assert response.status_code == 200
    summaries = response.json()["summaries"]
    assert [s["date"] for s in summaries] == ["2024-03-13", "2024-03-14"]
    assert [s["recovery_status"] for s in summaries] == ["excellent", "low"]

    response = client.post(
        f"/api/summary/{user_id}/recompute", json={"dates": ["2024-03-14", "2024-02-01"]}
    )
    assert [s["date"] for s in response.json()["summaries"]] == ["2024-03-14"]


def test_weekly_summaries(client):
    for day in ("2024-03-01", "2024-03-09", "2024-03-14"):
        result = sync(client, timestamp=f"{day}T08:00:00Z", hrv=50)
    data = client.get(f"/api/summary/{result['user_id']}/weekly").json()
    assert [s["date"] for s in data["summaries"]] == ["2024-03-14", "2024-03-09"]


def test_readings_since_and_limit(client):
    for hour in (8, 9, 10):
        result = sync(client, timestamp=f"2024-03-15T{hour:02d}:00:00Z", heart_rate=70)
    user_id = result["user_id"]

    data = client.get(
        f"/api/biometrics/{user_id}", params={"since": "2024-03-15T08:00:00Z"}
    ).json()
    assert [r["timestamp"] for r in data["readings"]] == [
        "2024-03-15T10:00:00",
        "2024-03-15T09:00:00",
    ]

    data = client.get(f"/api/biometrics/{user_id}", params={"limit": 1}).json()
    assert data["count"] == 1


def test_latest_reading(client):
    sync(client, timestamp="2024-03-15T09:00:00Z", heart_rate=81)
    result = sync(client, timestamp="2024-03-15T08:00:00Z", heart_rate=70)

    data = client.get(f"/api/biometrics/{result['user_id']}/latest").json()
    assert data["reading"]["heart_rate"] == 81

    empty = client.get("/api/biometrics/unknown/latest").json()
    assert empty["reading"] is None


def test_trends_endpoint(client):
    sync(client, timestamp="2024-03-14T08:00:00Z", heart_rate=60, hrv=50, steps=1000)
    result = sync(client, timestamp="2024-03-14T20:00:00Z", heart_rate=80, steps=4000)

    response = client.get(f"/api/trends/{result['user_id']}", params={"days": "abc"})
    assert response.status_code == 200
    data = response.json()
    assert data["days"] == 7
    trends = data["trends"]
    assert trends["heart_rate"] == [{"date": "2024-03-14", "avg": 70.0, "min": 60, "max": 80}]
    assert trends["hrv"] == [{"date": "2024-03-14", "avg": 50.0}]
    assert trends["steps"] == [{"date": "2024-03-14", "total": 4000}]
    assert trends["wellness"] == []


def test_insights_endpoint(client):
    result = sync(client, heart_rate=55, hrv=75, steps=12000)
    insights = client.get(f"/api/insights/{result['user_id']}").json()["insights"]
    assert [(i["type"], i["category"]) for i in insights] == [
        ("positive", "recovery"),
        ("positive", "fitness"),
        ("achievement", "activity"),
    ]
    assert insights[2]["value"] == 12000


def test_breathing_session(client):
    """Breathing sessions resolve a registered device and report post minus pre."""
    user = client.post("/api/users/register", json={"device_id": "watch_a"}).json()["user"]

    response = client.post(
        "/api/breathing",
        json={
            "device_id": "watch_a",
            "duration_seconds": 120,
            "pre_heart_rate": 78,
            "post_heart_rate": 66,
        },
    )
    assert response.status_code == 200
    assert response.json()["heart_rate_change"] == -12

    history = client.get(f"/api/breathing/{user['id']}").json()["sessions"]
    assert len(history) == 1
    assert history[0]["duration_seconds"] == 120


def test_breathing_unknown_device_is_rejected(client):
    response = client.post("/api/breathing", json={"device_id": "ghost", "duration_seconds": 60})
    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "device_id"


@pytest.mark.asyncio
async def test_async_client_sync(service):
    """Run a sync through the ASGI app with an async client."""
    app.dependency_overrides[get_service] = lambda: service
    try:
        transport = ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/api/sync", json={"device_id": "watch_async", "heart_rate": 150}
            )
            assert response.status_code == 200
            user_id = response.json()["user_id"]

            summary = await client.get(f"/api/summary/{user_id}")
            assert summary.json()["heart_rate_zones"]["high_minutes"] == 1
    finally:
        app.dependency_overrides.clear()


def test_batch_readings_must_be_a_list(client):
    response = client.post(
        "/api/sync/batch", json={"device_id": "watch_a", "readings": {"heart_rate": 70}}
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_batch_with_one_malformed_reading_stores_nothing(client, database):
    """One bad row rejects the whole batch before any user or reading exists."""
    readings = [
        {"timestamp": "2024-03-15T08:00:00Z", "heart_rate": 70},
        {"timestamp": "2024-03-15T09:00:00Z", "heart_rate": -5},
    ]
    response = client.post("/api/sync/batch", json={"device_id": "watch_a", "readings": readings})
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["errors"][0]["field"] == "body.readings.1.heart_rate"

    with database.session_scope("check") as session:
        assert session.scalar(select(func.count()).select_from(User)) == 0
        assert session.scalar(select(func.count()).select_from(Reading)) == 0


def test_unexpected_error_uses_error_body(service, monkeypatch):
    """Unexpected failures return a generic JSON error instead of plain text."""

    def broken(self, user_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(WellnessService, "get_insights", broken)
    app.dependency_overrides[get_service] = lambda: service
    try:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/api/insights/someone")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {
        "error": {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": {},
        }
    }
