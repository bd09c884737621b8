import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_server_allocates_project_id_from_counter(client: AsyncClient, auth_headers, project_data):
    first = await client.post("/api/projects", json=project_data(), headers=auth_headers)
    second = await client.post("/api/projects", json=project_data(title="Second"), headers=auth_headers)

    assert first.status_code == 201
    assert first.json()["data"]["id"] == "00001"
    assert second.json()["data"]["id"] == "00002"
    assert first.json()["data"]["status"] == "pending"

    settings = (await client.get("/api/settings")).json()["data"]
    assert settings["projectIdCounter"] == 3


@pytest.mark.asyncio
async def test_client_id_advances_counter(client: AsyncClient, auth_headers, project_data):
    response = await client.post("/api/projects", json=project_data(id="00007"), headers=auth_headers)
    assert response.json()["data"]["id"] == "00007"

    response = await client.post("/api/projects", json=project_data(), headers=auth_headers)
    assert response.json()["data"]["id"] == "00008"


@pytest.mark.asyncio
async def test_duplicate_project_id_is_validation_error(client: AsyncClient, auth_headers, project_data):
    await client.post("/api/projects", json=project_data(id="00003"), headers=auth_headers)

    response = await client.post("/api/projects", json=project_data(id="00003"), headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "id"


@pytest.mark.asyncio
async def test_update_project_status(client: AsyncClient, auth_headers, project_data):
    created = (await client.post("/api/projects", json=project_data(), headers=auth_headers)).json()["data"]

    response = await client.put(
        f"/api/projects/{created['id']}",
        json=project_data(status="completed", tags=[]),
        headers=auth_headers,
    )

    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["status"] == "completed"
    assert updated["tags"] == []
    assert updated["createdAt"] == created["createdAt"]


@pytest.mark.asyncio
async def test_project_validation(client: AsyncClient, auth_headers, project_data):
    response = await client.post(
        "/api/projects",
        json=project_data(priority="urgent", tags=["x" * 51]),
        headers=auth_headers,
    )

    assert response.status_code == 400
    fields = {detail["field"] for detail in response.json()["details"]}
    assert "priority" in fields
    assert "tags.0" in fields


@pytest.mark.asyncio
async def test_filter_by_priority_and_delete(client: AsyncClient, auth_headers, project_data):
    await client.post("/api/projects", json=project_data(priority="low"), headers=auth_headers)
    high = (await client.post("/api/projects", json=project_data(priority="critical"), headers=auth_headers)).json()["data"]

    response = await client.get("/api/projects", params={"priority": "critical"})
    assert [p["id"] for p in response.json()["data"]] == [high["id"]]

    assert (await client.delete(f"/api/projects/{high['id']}")).status_code == 401
    assert (await client.delete(f"/api/projects/{high['id']}", headers=auth_headers)).status_code == 200
    assert (await client.get(f"/api/projects/{high['id']}")).status_code == 404
