"""
User endpoint tests — registration through ``POST /users``, listing,
detail, self-only update/delete, and the error body shape.
"""
import pytest
from httpx import AsyncClient


async def _create_user(client: AsyncClient, username: str = "alice") -> dict:
    resp = await client.post("/api/v1/users", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret123",
    })
    assert resp.status_code == 201
    return resp.json()


# ---------------------------------------------------------------------------
# Create user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_user(async_client: AsyncClient):
    """A valid user returns 201 with a generated id and no password field."""
    user = await _create_user(async_client)
    assert user["id"] > 0
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert "created_at" in user
    assert "password" not in user
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_create_user_duplicate_username(async_client: AsyncClient):
    """Reusing a username returns 409 with a stable error key."""
    await _create_user(async_client)
    resp = await async_client.post("/api/v1/users", json={
        "username": "alice",
        "email": "different@example.com",
        "password": "secret123",
    })
    assert resp.status_code == 409
    assert resp.json() == {"error": "user_already_exists", "message": "user already exists"}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"email": "nousername@example.com", "password": "secret123"},
    {"username": "ab", "email": "short@example.com", "password": "secret123"},
    {"username": "bademail", "email": "not-an-email", "password": "secret123"},
    {"username": "shortpw", "email": "shortpw@example.com", "password": "123"},
])
async def test_create_user_invalid_payload(async_client: AsyncClient, payload):
    """Malformed input is a 400 validation error with field details."""
    resp = await async_client.post("/api/v1/users", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "validation_failed"
    assert body["details"]


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_user(async_client: AsyncClient):
    created = await _create_user(async_client)
    resp = await async_client.get(f"/api/v1/users/{created['id']}")
    assert resp.status_code == 200
    assert resp.json()["username"] == "alice"


@pytest.mark.asyncio
async def test_get_user_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/users/99999")
    assert resp.status_code == 404
    assert resp.json()["error"] == "user_not_found"


@pytest.mark.asyncio
async def test_list_users_paginates(async_client: AsyncClient):
    for name in ("alice", "bobby", "carol"):
        await _create_user(async_client, name)

    resp = await async_client.get("/api/v1/users", params={"limit": 2, "offset": 0})
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert body["limit"] == 2
    assert body["offset"] == 0
    assert len(body["users"]) == 2


@pytest.mark.asyncio
async def test_list_users_limit_is_clamped(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/users", params={"limit": 1000})
    assert resp.status_code == 200
    assert resp.json()["limit"] == 100


@pytest.mark.asyncio
async def test_list_users_rejects_negative_offset(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/users", params={"offset": -1})
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_user_requires_token(async_client: AsyncClient):
    user = await _create_user(async_client)
    resp = await async_client.put(f"/api/v1/users/{user['id']}", json={"username": "renamed"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_update_user_rejects_bad_token(async_client: AsyncClient):
    user = await _create_user(async_client)
    resp = await async_client.put(
        f"/api/v1/users/{user['id']}",
        json={"username": "renamed"},
        headers={"Authorization": "Bearer garbage"},
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == "invalid_token"


@pytest.mark.asyncio
async def test_update_own_user(async_client: AsyncClient, auth_header):
    user = await _create_user(async_client)
    resp = await async_client.put(
        f"/api/v1/users/{user['id']}",
        json={"username": "renamed"},
        headers=auth_header(user["id"], user["email"]),
    )
    assert resp.status_code == 200
    assert resp.json()["username"] == "renamed"


@pytest.mark.asyncio
async def test_update_other_user_forbidden(async_client: AsyncClient, auth_header):
    alice = await _create_user(async_client)
    bobby = await _create_user(async_client, "bobby")
    resp = await async_client.put(
        f"/api/v1/users/{alice['id']}",
        json={"username": "hijacked"},
        headers=auth_header(bobby["id"], bobby["email"]),
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "user_forbidden"


@pytest.mark.asyncio
async def test_delete_own_user(async_client: AsyncClient, auth_header):
    user = await _create_user(async_client)
    resp = await async_client.delete(
        f"/api/v1/users/{user['id']}", headers=auth_header(user["id"], user["email"])
    )
    assert resp.status_code == 204
    assert resp.content == b""

    resp = await async_client.get(f"/api/v1/users/{user['id']}")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Middleware headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_response_carries_diagnostic_headers(async_client: AsyncClient):
    await _create_user(async_client)
    resp = await async_client.get("/api/v1/users", headers={"X-Request-ID": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"
    assert int(resp.headers["x-query-count"]) >= 1
    assert float(resp.headers["x-response-time-ms"]) >= 0
    assert resp.headers["x-content-type-options"] == "nosniff"


@pytest.mark.asyncio
async def test_request_id_generated_when_absent(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.headers["x-request-id"]
