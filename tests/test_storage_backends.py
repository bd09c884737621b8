import json

import pytest

from print_analytics.services.database_service import DatabaseService
from print_analytics.services.json_store_service import JsonStoreService
from print_analytics.services.storage import create_storage
from print_analytics.utils.exceptions import ConfigurationError, StorageError

from conftest import make_config


def feedback_record(record_id, rating=3, created_at="2024-05-01T10:00:00.000Z", **overrides):
    record = {
        "id": record_id,
        "name": "Tester",
        "email": "tester@example.com",
        "partName": None,
        "location": "Bangalore",
        "category": "general",
        "subject": "Subject",
        "message": "Message",
        "rating": rating,
        "image": None,
        "status": "new",
        "createdAt": created_at,
        "updatedAt": created_at,
    }
    record.update(overrides)
    return record


@pytest.fixture
async def store(tmp_path, backend):
    storage = create_storage(make_config(tmp_path, backend=backend))
    await storage.initialize()
    yield storage
    await storage.close()


def test_create_storage_selects_backend(tmp_path):
    assert isinstance(create_storage(make_config(tmp_path, backend="sqlite")), DatabaseService)
    assert isinstance(create_storage(make_config(tmp_path, backend="json")), JsonStoreService)

    config = make_config(tmp_path)
    config["storage"]["backend"] = "couchdb"
    with pytest.raises(ConfigurationError):
        create_storage(config)


async def test_insert_get_replace_delete(store):
    stored = await store.insert_record("feedback", feedback_record("1"))
    assert stored["rating"] == 3
    assert (await store.get_record("feedback", "1"))["email"] == "tester@example.com"

    replaced = await store.replace_record("feedback", "1", feedback_record("1", rating=5, status="resolved"))
    assert replaced["rating"] == 5
    assert replaced["status"] == "resolved"
    assert await store.replace_record("feedback", "missing", feedback_record("missing")) is None

    assert await store.delete_record("feedback", "1") is True
    assert await store.delete_record("feedback", "1") is False
    assert await store.get_record("feedback", "1") is None


async def test_list_filters_sorts_and_pages(store):
    for index, rating in enumerate([5, 3, 5, 1, 5]):
        await store.insert_record("feedback", feedback_record(str(100 + index), rating=rating))

    items, total = await store.list_records("feedback", filters={"rating": 5}, sort_by="createdAt", sort_order="desc")
    assert total == 3
    # Equal timestamps fall back to id, in the same direction
    assert [item["id"] for item in items] == ["104", "102", "100"]

    items, total = await store.list_records("feedback", sort_by="rating", sort_order="asc", page=2, limit=2)
    assert total == 5
    # Ascending ratings 1, 3, 5, 5, 5 with ties ordered by id
    assert [item["id"] for item in items] == ["100", "102"]


async def test_count_and_sum(store):
    await store.insert_record("feedback", feedback_record("1", rating=2))
    await store.insert_record("feedback", feedback_record("2", rating=4))

    assert await store.count_records("feedback") == 2
    assert await store.sum_field("feedback", "rating") == pytest.approx(6)
    assert await store.count_records("jobs") == 0


async def test_settings_upsert_merges_keys(store):
    await store.upsert_settings({"investment": 600000, "projectIdCounter": 4})
    settings = await store.upsert_settings({"investment": 700000, "readFeedback": ["1", "2"]})

    assert settings == {"investment": 700000, "projectIdCounter": 4, "readFeedback": ["1", "2"]}
    assert await store.get_settings() == settings


async def test_auth_log_newest_first(store):
    for index in range(3):
        await store.append_auth_log({
            "timestamp": f"2024-05-01T10:00:0{index}.000Z",
            "action": "login",
            "success": index == 2,
            "ip": "127.0.0.1",
            "userAgent": "pytest",
        })

    entries = await store.list_auth_logs(limit=2)
    assert [entry["success"] for entry in entries] == [True, False]


async def test_ping(store):
    assert await store.ping() is True


async def test_json_store_writes_envelope_and_caps_auth_log(tmp_path):
    store = JsonStoreService(tmp_path / "data", auth_log_limit=3)
    await store.initialize()
    await store.insert_record("feedback", feedback_record("1"))

    envelope = json.loads((tmp_path / "data" / "feedback.json").read_text(encoding="utf-8"))
    assert envelope["type"] == "feedback"
    assert envelope["recordCount"] == 1
    assert envelope["data"][0]["id"] == "1"
    assert envelope["timestamp"].endswith("Z")

    for index in range(5):
        await store.append_auth_log({"action": "login", "success": False, "ip": str(index)})
    entries = json.loads((tmp_path / "data" / "auth_log.json").read_text(encoding="utf-8"))
    assert [entry["ip"] for entry in entries] == ["2", "3", "4"]

    # No temp files left behind
    assert not list((tmp_path / "data").glob("*.tmp"))


async def test_json_store_backup_on_write(tmp_path):
    store = JsonStoreService(tmp_path, backup_on_write=True)
    await store.initialize()
    await store.upsert_settings({"investment": 1})

    backups = list(tmp_path.glob("settings_backup_*.json"))
    assert len(backups) == 1
    assert json.loads(backups[0].read_text(encoding="utf-8"))["data"] == {"investment": 1}


async def test_json_store_rejects_duplicate_ids(tmp_path):
    store = JsonStoreService(tmp_path)
    await store.initialize()
    await store.insert_record("feedback", feedback_record("1"))

    with pytest.raises(StorageError):
        await store.insert_record("feedback", feedback_record("1"))


async def test_json_store_reports_corrupt_file(tmp_path):
    store = JsonStoreService(tmp_path)
    await store.initialize()
    (tmp_path / "jobs.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        await store.count_records("jobs")
