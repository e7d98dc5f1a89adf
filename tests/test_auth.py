"""
Auth endpoint tests — register and login.
"""
import pytest
from httpx import AsyncClient

from social.security import TokenIssuer


@pytest.mark.asyncio
async def test_register_returns_token_for_new_user(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["username"] == "alice"
    user_id, email = TokenIssuer.from_settings().validate(body["token"])
    assert user_id == body["user"]["id"]
    assert email == "alice@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_conflicts(async_client: AsyncClient):
    payload = {"username": "alice", "email": "alice@example.com", "password": "secret123"}
    assert (await async_client.post("/api/v1/auth/register", json=payload)).status_code == 201
    resp = await async_client.post("/api/v1/auth/register", json=payload)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_login(async_client: AsyncClient):
    await async_client.post("/api/v1/auth/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
    })

    resp = await async_client.post("/api/v1/auth/login", json={
        "email": "alice@example.com",
        "password": "secret123",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["email"] == "alice@example.com"

    # A bare token (no "Bearer" prefix) is accepted too.
    resp = await async_client.put(
        f"/api/v1/users/{body['user']['id']}",
        json={"username": "alicia"},
        headers={"Authorization": body["token"]},
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("email,password", [
    ("alice@example.com", "wrong-password"),
    ("nobody@example.com", "secret123"),
])
async def test_login_rejects_bad_credentials(async_client: AsyncClient, email, password):
    await async_client.post("/api/v1/auth/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
    })
    resp = await async_client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 401
    assert resp.json()["error"] == "invalid_credentials"
