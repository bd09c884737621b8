import time

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_submit_feedback_is_public(client: AsyncClient, feedback_data):
    response = await client.post("/api/feedback", json=feedback_data())

    assert response.status_code == 201
    feedback = response.json()["data"]
    assert feedback["status"] == "new"
    assert feedback["email"] == "priya.raman@example.com"
    assert feedback["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6])
async def test_rating_out_of_range_is_rejected(client: AsyncClient, feedback_data, rating):
    response = await client.post("/api/feedback", json=feedback_data(rating=rating))

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "rating"


@pytest.mark.asyncio
async def test_invalid_email_is_rejected(client: AsyncClient, feedback_data):
    response = await client.post("/api/feedback", json=feedback_data(email="not-an-email"))

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "email"


@pytest.mark.asyncio
@pytest.mark.parametrize("email", [
    "a" * 99 + "!",
    "a.b-c" * 30 + "@x",
    "user@" + "sub." * 30 + "example.com",
])
async def test_long_or_malformed_email_fails_fast(client: AsyncClient, feedback_data, email):
    started = time.perf_counter()
    response = await client.post("/api/feedback", json=feedback_data(email=email))

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "email"
    assert time.perf_counter() - started < 2


@pytest.mark.asyncio
async def test_pagination_over_25_items(client: AsyncClient, feedback_data):
    for index in range(25):
        response = await client.post("/api/feedback", json=feedback_data(subject=f"Note {index}"))
        assert response.status_code == 201

    response = await client.get("/api/feedback", params={"page": 2, "limit": 10})

    body = response.json()
    assert len(body["data"]) == 10
    assert body["pagination"] == {"page": 2, "limit": 10, "total": 25, "pages": 3}

    response = await client.get("/api/feedback", params={"page": 3, "limit": 10})
    assert len(response.json()["data"]) == 5


@pytest.mark.asyncio
async def test_feedback_has_no_update(client: AsyncClient, feedback_data, auth_headers):
    created = (await client.post("/api/feedback", json=feedback_data())).json()["data"]

    response = await client.put(f"/api/feedback/{created['id']}", json=feedback_data(), headers=auth_headers)

    assert response.status_code == 405


@pytest.mark.asyncio
async def test_delete_requires_admin(client: AsyncClient, feedback_data, auth_headers):
    created = (await client.post("/api/feedback", json=feedback_data())).json()["data"]

    assert (await client.delete(f"/api/feedback/{created['id']}")).status_code == 401
    assert (await client.delete(f"/api/feedback/{created['id']}", headers=auth_headers)).status_code == 200
    assert (await client.delete(f"/api/feedback/{created['id']}", headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
async def test_filter_by_category(client: AsyncClient, feedback_data):
    await client.post("/api/feedback", json=feedback_data(category="bug-report"))
    await client.post("/api/feedback", json=feedback_data(category="general"))

    response = await client.get("/api/feedback", params={"category": "bug-report"})

    data = response.json()["data"]
    assert len(data) == 1
    assert data[0]["category"] == "bug-report"
