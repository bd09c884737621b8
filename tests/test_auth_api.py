from datetime import datetime, timedelta, timezone

import jwt
import pytest
from httpx import AsyncClient, ASGITransport

from conftest import ADMIN_PASSWORD, JWT_SECRET, make_config, start_app


@pytest.mark.asyncio
async def test_login_and_verify(client: AsyncClient):
    response = await client.post("/api/auth/login", json={"password": ADMIN_PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["expiresAt"]
    claims = jwt.decode(body["token"], JWT_SECRET, algorithms=["HS256"])
    assert claims["role"] == "admin"
    assert claims["exp"] - claims["iat"] == 3600

    response = await client.post("/api/auth/verify", headers={"Authorization": f"Bearer {body['token']}"})
    assert response.status_code == 200
    assert response.json()["valid"] is True
    assert response.json()["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_wrong_password(client: AsyncClient):
    response = await client.post("/api/auth/login", json={"password": "guess"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_missing_password(client: AsyncClient):
    response = await client.post("/api/auth/login", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "Password is required"


@pytest.mark.asyncio
async def test_login_attempts_are_logged(app, client: AsyncClient):
    await client.post("/api/auth/login", json={"password": "guess"})
    await client.post("/api/auth/login", json={"password": ADMIN_PASSWORD, "action": "delete-job"})

    entries = await app.state.storage.list_auth_logs()

    assert [entry["success"] for entry in entries] == [True, False]
    assert entries[0]["action"] == "delete-job"
    assert entries[1]["action"] == "login"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(app, client: AsyncClient):
    stale = app.state.auth_service.issue_token(now=datetime.now(timezone.utc) - timedelta(hours=2))

    response = await client.post("/api/auth/verify", headers={"Authorization": f"Bearer {stale['token']}"})

    assert response.status_code == 401
    assert response.json()["error"] == "Token expired"


@pytest.mark.asyncio
async def test_token_without_admin_role_is_rejected(client: AsyncClient):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"role": "viewer", "iat": int(now.timestamp()), "exp": int((now + timedelta(hours=1)).timestamp())},
        JWT_SECRET,
        algorithm="HS256",
    )

    response = await client.post("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token"


@pytest.mark.asyncio
async def test_verify_without_token(client: AsyncClient):
    response = await client.post("/api/auth/verify")

    assert response.status_code == 401
    assert response.json()["error"] == "Access token required"


@pytest.mark.asyncio
async def test_login_rate_limit(tmp_path):
    config = make_config(tmp_path, rate_limits={"auth": {"max_calls": 2, "window_seconds": 900}})
    app = await start_app(config)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            statuses = [
                (await ac.post("/api/auth/login", json={"password": "guess"})).status_code
                for _ in range(3)
            ]
            # The general budget is separate
            health = await ac.get("/api/health")
    finally:
        await app.state.storage.close()

    assert statuses == [401, 401, 429]
    assert health.status_code == 200


@pytest.mark.asyncio
async def test_api_rate_limit(tmp_path):
    config = make_config(tmp_path, rate_limits={"api": {"max_calls": 3, "window_seconds": 900}})
    app = await start_app(config)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            responses = [await ac.get("/api/jobs") for _ in range(4)]
    finally:
        await app.state.storage.close()

    assert [r.status_code for r in responses] == [200, 200, 200, 429]
    assert responses[-1].json()["error"] == "Too many requests"
