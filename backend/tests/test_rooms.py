"""
Tests for room endpoints: public reads, caching and admin management.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_rooms_public(client: AsyncClient, test_room, conference_room, inactive_room):
    """Only active rooms are listed, sorted by name."""
    response = await client.get("/api/v1/rooms/")
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [r["name"] for r in data["rooms"]] == ["Board Room", "Focus Room"]


@pytest.mark.asyncio
async def test_list_rooms_served_from_cache(client: AsyncClient, test_room):
    """Second read is a cache hit."""
    first = await client.get("/api/v1/rooms/")
    second = await client.get("/api/v1/rooms/")
    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert second.json()["rooms"] == first.json()["rooms"]


@pytest.mark.asyncio
async def test_get_room(client: AsyncClient, test_room):
    response = await client.get(f"/api/v1/rooms/{test_room.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Focus Room"
    assert data["capacity"] == 4
    assert data["amenities"] == ["whiteboard"]


@pytest.mark.asyncio
async def test_get_room_not_found(client: AsyncClient, db_session):
    response = await client.get("/api/v1/rooms/99999")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "not_found"


@pytest.mark.asyncio
async def test_create_room_admin(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/rooms/", json={
        "name": "  Quiet Pod ",
        "capacity": 2,
        "type": "workspace",
        "amenities": ["lamp"],
        "hourly_rate": 8.5,
    }, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Quiet Pod"
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_create_room_requires_admin(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/rooms/", json={
        "name": "Nope",
        "capacity": 2,
    }, headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_room_unauthenticated(client: AsyncClient, db_session):
    response = await client.post("/api/v1/rooms/", json={"name": "Nope", "capacity": 2})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_room_duplicate_name(client: AsyncClient, admin_headers, test_room):
    response = await client.post("/api/v1/rooms/", json={
        "name": "Focus Room",
        "capacity": 3,
    }, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [0, 101])
async def test_create_room_capacity_bounds(client: AsyncClient, admin_headers, capacity):
    response = await client.post("/api/v1/rooms/", json={
        "name": "Odd Room",
        "capacity": capacity,
    }, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_room_invalidates_listing(client: AsyncClient, admin_headers, test_room):
    await client.get("/api/v1/rooms/")
    await client.post("/api/v1/rooms/", json={"name": "Studio", "capacity": 5}, headers=admin_headers)

    response = await client.get("/api/v1/rooms/")
    assert response.json()["cached"] is False
    assert response.json()["count"] == 2


@pytest.mark.asyncio
async def test_update_room(client: AsyncClient, admin_headers, test_room):
    await client.get(f"/api/v1/rooms/{test_room.id}")

    response = await client.put(
        f"/api/v1/rooms/{test_room.id}",
        json={"capacity": 6, "hourly_rate": 20},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["capacity"] == 6
    assert response.json()["name"] == "Focus Room"

    # Detail cache was dropped with the rest of the room keys
    detail = await client.get(f"/api/v1/rooms/{test_room.id}")
    assert detail.json()["capacity"] == 6


@pytest.mark.asyncio
async def test_update_room_rename_conflict(client: AsyncClient, admin_headers, test_room, conference_room):
    response = await client.put(
        f"/api/v1/rooms/{test_room.id}",
        json={"name": "Board Room"},
        headers=admin_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_room_is_soft(client: AsyncClient, admin_headers, auth_headers, test_room, slot):
    """Deactivated rooms disappear from the listing but stay readable and keep bookings."""
    booking = await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(9).isoformat(),
        "end_time": slot(10).isoformat(),
    }, headers=auth_headers)
    assert booking.status_code == 201

    response = await client.delete(f"/api/v1/rooms/{test_room.id}", headers=admin_headers)
    assert response.status_code == 200

    listing = await client.get("/api/v1/rooms/")
    assert listing.json()["count"] == 0

    detail = await client.get(f"/api/v1/rooms/{test_room.id}")
    assert detail.status_code == 200
    assert detail.json()["is_active"] is False

    existing = await client.get(f"/api/v1/bookings/{booking.json()['id']}", headers=auth_headers)
    assert existing.status_code == 200


@pytest.mark.asyncio
async def test_room_schedule_hides_requester(client: AsyncClient, auth_headers, test_room, slot):
    await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(14).isoformat(),
        "end_time": slot(15).isoformat(),
    }, headers=auth_headers)
    await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(9).isoformat(),
        "end_time": slot(10).isoformat(),
    }, headers=auth_headers)

    response = await client.get(f"/api/v1/rooms/{test_room.id}/schedule")
    assert response.status_code == 200
    data = response.json()
    assert data["room_name"] == "Focus Room"
    assert len(data["slots"]) == 2
    # Earliest first
    assert data["slots"][0]["start_time"] < data["slots"][1]["start_time"]
    assert set(data["slots"][0]) == {"booking_id", "start_time", "end_time"}


@pytest.mark.asyncio
async def test_room_schedule_refreshes_after_booking(client: AsyncClient, auth_headers, test_room, slot):
    first = await client.get(f"/api/v1/rooms/{test_room.id}/schedule")
    assert first.json()["slots"] == []

    await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(11).isoformat(),
        "end_time": slot(12).isoformat(),
    }, headers=auth_headers)

    second = await client.get(f"/api/v1/rooms/{test_room.id}/schedule")
    assert second.json()["cached"] is False
    assert len(second.json()["slots"]) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["  a ", "    ", " " + "n" * 51 + " "])
async def test_room_name_bounds_apply_after_stripping(client: AsyncClient, admin_headers, test_room, name):
    created = await client.post("/api/v1/rooms/", json={"name": name, "capacity": 2}, headers=admin_headers)
    assert created.status_code == 422

    renamed = await client.put(f"/api/v1/rooms/{test_room.id}", json={"name": name}, headers=admin_headers)
    assert renamed.status_code == 422
