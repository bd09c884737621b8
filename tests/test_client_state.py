import pytest

from print_analytics.client.analytics import compute_dashboard
from print_analytics.client.local_cache import LocalCache
from print_analytics.client.state import DEFAULT_INVESTMENT, AppState, MutationStatus


def test_interrupted_submit_is_retried_after_reload():
    state = AppState()
    state.jobs.append({"id": "1"})
    state.mark("jobs", "1", MutationStatus.submitted, "save")
    state.mark("settings", "settings", MutationStatus.pending_local, "save")

    restored = AppState.from_blob(state.to_blob())

    assert restored.status_of("jobs", "1") == MutationStatus.pending_local
    assert restored.pending_actions["jobs"]["1"] == "save"
    assert restored.entries_with_status("settings", MutationStatus.pending_local) == ["settings"]


def test_blob_round_trips_settings():
    state = AppState(investment=750000, project_id_counter=9)
    state.read_feedback.update({"3", "1"})

    blob = state.to_blob()

    assert blob["readFeedback"] == ["1", "3"]
    assert blob["projectIdCounter"] == 9
    assert blob["lastSync"]
    restored = AppState.from_blob(blob)
    assert restored.investment == 750000
    assert restored.read_feedback == {"1", "3"}


def test_missing_settings_fall_back_to_defaults():
    state = AppState.from_blob({})

    assert state.investment == DEFAULT_INVESTMENT
    assert state.project_id_counter == 1
    assert state.jobs == []


def test_next_project_id_skips_taken_ids():
    state = AppState(project_id_counter=2)
    state.projects = [{"id": "00002"}, {"id": "00003"}]

    assert state.next_project_id() == "00004"
    assert state.project_id_counter == 4


def test_confirming_clears_pending_action():
    state = AppState()
    state.mark("projects", "00001", MutationStatus.pending_local, "delete")
    state.mark("projects", "00001", MutationStatus.confirmed)

    assert state.pending_actions["projects"] == {}
    assert state.status_of("projects", "00001") == MutationStatus.confirmed


def test_editing_unsynced_entry_stays_a_create():
    state = AppState()
    state.mark("projects", "00001", MutationStatus.pending_local, "create")
    state.mark("projects", "00001", MutationStatus.pending_local, "save")

    assert state.pending_actions["projects"]["00001"] == "create"

    state.mark("projects", "00001", MutationStatus.pending_local, "delete")
    assert state.pending_actions["projects"]["00001"] == "delete"


def test_prune_confirmed_keeps_live_and_pending_entries():
    state = AppState()
    state.jobs = [{"id": "1"}]
    state.mark("jobs", "1", MutationStatus.confirmed)
    state.mark("jobs", "2", MutationStatus.confirmed)
    state.mark("jobs", "3", MutationStatus.pending_local, "delete")

    state.prune_confirmed("jobs")

    assert state.sync_state["jobs"] == {"1": "confirmed", "3": "pending-local"}


def test_local_cache_items(tmp_path):
    cache = LocalCache(tmp_path / "cache")

    assert cache.load_state() is None
    cache.set_item("authToken", "abc")
    cache.save_state({"records": []})

    reopened = LocalCache(tmp_path / "cache")
    assert reopened.get_item("authToken") == "abc"
    assert reopened.load_state() == {"records": []}

    reopened.remove_item("authToken")
    assert cache.get_item("authToken") is None


def test_local_cache_ignores_corrupt_file(tmp_path):
    cache = LocalCache(tmp_path)
    cache.path.write_text("{oops", encoding="utf-8")

    assert cache.load_state() is None


def test_compute_dashboard():
    jobs = [
        {"date": "2024-05-14", "materialUsed": "PETG", "category": "production", "status": "completed",
         "totalSavings": 736.5, "totalQuantity": 5, "printingTimeHrs": 1.5, "printCost": 102.7},
        {"date": "2024-06-02", "materialUsed": "PLA", "category": "research", "status": "pending",
         "totalSavings": 63.5, "totalQuantity": 1, "printingTimeHrs": 0.5, "printCost": 36.5},
    ]

    stats = compute_dashboard(jobs, investment=8000, feedback_count=2, project_count=1)

    assert stats["jobCount"] == 2
    assert stats["totalSavings"] == pytest.approx(800)
    assert stats["totalQuantity"] == 6
    assert stats["totalPrintingTime"] == pytest.approx(2.0)
    assert stats["totalPrintCost"] == pytest.approx(550.0)
    assert stats["roiPercent"] == pytest.approx(10.0)
    assert stats["paybackRemaining"] == pytest.approx(7200)
    assert stats["savingsByMaterial"] == {"PETG": 736.5, "PLA": 63.5}
    assert stats["savingsByMonth"] == {"2024-05": 736.5, "2024-06": 63.5}
    assert stats["statusCounts"] == {"completed": 1, "pending": 1}


def test_compute_dashboard_without_jobs():
    stats = compute_dashboard([], investment=0)

    assert stats["totalSavings"] == 0
    assert stats["roiPercent"] == 0.0
    assert stats["paybackRemaining"] == 0
