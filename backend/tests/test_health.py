"""
Tests for health, root and metrics endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["cache"]["status"] == "memory"


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_request_id_echoed(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["x-request-id"] == "abc123"
    assert response.headers["x-response-time"].endswith("ms")


@pytest.mark.asyncio
async def test_metrics_after_booking(client: AsyncClient, auth_headers, test_room, slot):
    await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(10).isoformat(),
        "end_time": slot(11).isoformat(),
    }, headers=auth_headers)

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert 'booking_attempts_total{outcome="admitted"}' in response.text
    assert "admission_check_latency_seconds" in response.text
