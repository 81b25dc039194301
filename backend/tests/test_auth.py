"""
Tests for authentication endpoints: registration, login and current user.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.core.config import get_settings
from app.core.security import create_access_token
from app.services.auth_service import ensure_default_admin


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns a token and the user."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "New@Example.com",
        "username": "newuser",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["access_token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["username"] == "newuser"
    assert data["user"]["role"] == "user"
    assert "hashed_password" not in data["user"]  # Never expose password hash


@pytest.mark.asyncio
async def test_register_cannot_choose_role(client: AsyncClient):
    """A role in the registration body is ignored."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "sneaky@example.com",
        "username": "sneaky",
        "password": "securepassword123",
        "role": "admin",
    })
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "user"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    """Duplicate email returns 409."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "test@example.com",
        "username": "different",
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "duplicate"
    assert response.json()["detail"]["field"] == "email"


@pytest.mark.asyncio
async def test_register_duplicate_username(client: AsyncClient, test_user):
    """Duplicate username returns 409."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "different@example.com",
        "username": "testuser",
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json()["detail"]["field"] == "username"


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 6 chars returns 422."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "weak@example.com",
        "username": "weakuser",
        "password": "short",
    })
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error"] == "validation_error"
    assert any(f["field"] == "password" for f in detail["fields"])


@pytest.mark.asyncio
async def test_register_invalid_email(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        "email": "not-an-email",
        "username": "bademail",
        "password": "securepassword123",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user):
    """Valid credentials return JWT token."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["user"]["id"] == test_user.id


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "unauthenticated"


@pytest.mark.asyncio
async def test_login_nonexistent_user(client: AsyncClient):
    """Non-existent email returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_returns_current_user(client: AsyncClient, test_user, auth_headers):
    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["username"] == "testuser"


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient):
    response = await client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not.a.token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_rejected(client: AsyncClient, test_user):
    token = create_access_token(
        data={"sub": str(test_user.id), "role": "user"}, expires_delta=timedelta(seconds=-1)
    )
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"]["message"] == "Token has expired"


@pytest.mark.asyncio
async def test_token_for_deleted_user_rejected(client: AsyncClient):
    token = create_access_token(data={"sub": "9999", "role": "admin"})
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_default_admin_bootstrap(client: AsyncClient, db_session):
    """The configured admin is created once and can log in."""
    created = await ensure_default_admin(db_session)
    assert created is not None
    assert created.role == "admin"
    assert await ensure_default_admin(db_session) is None

    settings = get_settings()
    response = await client.post("/api/v1/auth/login", json={
        "email": settings.ADMIN_EMAIL,
        "password": settings.ADMIN_PASSWORD,
    })
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "admin"


@pytest.mark.asyncio
@pytest.mark.parametrize("username", ["  ab  ", "   x   ", " " + "u" * 31 + " "])
async def test_register_username_bounds_apply_after_stripping(client: AsyncClient, username):
    response = await client.post("/api/v1/auth/register", json={
        "email": "padded@example.com",
        "username": username,
        "password": "securepassword123",
    })
    assert response.status_code == 422
    assert any(f["field"] == "username" for f in response.json()["detail"]["fields"])


@pytest.mark.asyncio
async def test_register_username_is_stripped(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        "email": "padded@example.com",
        "username": "  padded  ",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    assert response.json()["user"]["username"] == "padded"
