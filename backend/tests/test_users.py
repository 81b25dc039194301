"""
Tests for admin user management endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import InvalidRequestError


@pytest.mark.asyncio
async def test_users_require_admin(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/users/", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "forbidden"


@pytest.mark.asyncio
async def test_list_users_paginated(client: AsyncClient, admin_headers, test_user, other_user):
    response = await client.get("/api/v1/users/?page=1&limit=2", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["count"] == 2
    assert data["pages"] == 2
    assert data["page"] == 1

    second = await client.get("/api/v1/users/?page=2&limit=2", headers=admin_headers)
    assert second.json()["count"] == 1


@pytest.mark.asyncio
async def test_user_stats(client: AsyncClient, admin_headers, test_user, other_user):
    response = await client.get("/api/v1/users/stats/overview", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {
        "total_users": 3,
        "total_admins": 1,
        "total_regular_users": 2,
        "recent_users": 3,
    }


@pytest.mark.asyncio
async def test_get_user_with_bookings(client: AsyncClient, admin_headers, auth_headers, test_user, test_room, slot):
    await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(10).isoformat(),
        "end_time": slot(11).isoformat(),
    }, headers=auth_headers)

    response = await client.get(f"/api/v1/users/{test_user.id}", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["username"] == "testuser"
    assert data["bookings"]["count"] == 1
    assert data["bookings"]["data"][0]["room"]["name"] == "Focus Room"


@pytest.mark.asyncio
async def test_get_missing_user(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/users/99999", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_user_role(client: AsyncClient, admin_headers, auth_headers, test_user):
    response = await client.put(
        f"/api/v1/users/{test_user.id}", json={"role": "admin"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "admin"

    # Role changes apply to existing tokens immediately
    promoted = await client.get("/api/v1/users/", headers=auth_headers)
    assert promoted.status_code == 200


@pytest.mark.asyncio
async def test_update_user_duplicate_email(client: AsyncClient, admin_headers, test_user, other_user):
    response = await client.put(
        f"/api/v1/users/{test_user.id}", json={"email": "other@example.com"}, headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_user_removes_bookings(client: AsyncClient, admin_headers, auth_headers, other_headers, test_user, test_room, slot):
    created = await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(10).isoformat(),
        "end_time": slot(11).isoformat(),
    }, headers=auth_headers)
    assert created.status_code == 201

    response = await client.delete(f"/api/v1/users/{test_user.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "User and 1 booking(s) deleted"

    # Deleted account's token no longer works
    assert (await client.get("/api/v1/auth/me", headers=auth_headers)).status_code == 401

    # And the slot is free again
    rebook = await client.post("/api/v1/bookings/", json={
        "room_id": test_room.id,
        "start_time": slot(10).isoformat(),
        "end_time": slot(11).isoformat(),
    }, headers=other_headers)
    assert rebook.status_code == 201


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client: AsyncClient, admin_headers, admin_user):
    response = await client.delete(f"/api/v1/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_booking_collections_are_never_lazy_loaded(test_user, test_room):
    """Bookings are always queried explicitly; touching the collections is an error."""
    with pytest.raises(InvalidRequestError):
        test_user.bookings
    with pytest.raises(InvalidRequestError):
        test_room.bookings
