"""
In-memory mirror of server state plus offline bookkeeping
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from ..utils.identifiers import format_project_id
from ..utils.timeutils import to_iso, utc_now

DEFAULT_INVESTMENT = 600000
COLLECTIONS = ("jobs", "feedback", "projects")
SETTINGS = "settings"
# The settings bag is tracked as a single pending entry under this id
SETTINGS_ID = "settings"

# Pending actions; a create is pushed with POST so it never overwrites a server record
CREATE = "create"
SAVE = "save"
DELETE = "delete"


class MutationStatus(str, Enum):
    pending_local = "pending-local"
    submitted = "submitted"
    confirmed = "confirmed"
    conflict = "conflict"


def _empty_tracking() -> Dict[str, Dict[str, str]]:
    return {name: {} for name in COLLECTIONS + (SETTINGS,)}


@dataclass
class AppState:
    """Everything the page needs, serialisable to one cache blob"""
    jobs: List[Dict[str, Any]] = field(default_factory=list)
    feedback: List[Dict[str, Any]] = field(default_factory=list)
    projects: List[Dict[str, Any]] = field(default_factory=list)
    investment: float = DEFAULT_INVESTMENT
    project_id_counter: int = 1
    read_feedback: Set[str] = field(default_factory=set)
    read_projects: Set[str] = field(default_factory=set)
    # {collection: {id: MutationStatus value}}
    sync_state: Dict[str, Dict[str, str]] = field(default_factory=_empty_tracking)
    # {collection: {id: "create" | "save" | "delete"}} for entries not yet confirmed
    pending_actions: Dict[str, Dict[str, str]] = field(default_factory=_empty_tracking)
    auth_token: Optional[str] = None
    session_expiry: Optional[str] = None
    last_sync: Optional[str] = None

    # Collections

    def collection(self, name: str) -> List[Dict[str, Any]]:
        return getattr(self, name)

    def find(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self.collection(collection):
            if str(record.get("id")) == record_id:
                return record
        return None

    def upsert(self, collection: str, record: Dict[str, Any]) -> None:
        records = self.collection(collection)
        for index, existing in enumerate(records):
            if str(existing.get("id")) == str(record.get("id")):
                records[index] = record
                return
        records.append(record)

    def remove(self, collection: str, record_id: str) -> bool:
        records = self.collection(collection)
        remaining = [r for r in records if str(r.get("id")) != record_id]
        setattr(self, collection, remaining)
        return len(remaining) != len(records)

    # Sync bookkeeping

    def mark(self, collection: str, record_id: str, status: MutationStatus, action: Optional[str] = None) -> None:
        self.sync_state[collection][record_id] = status.value
        if status in (MutationStatus.pending_local, MutationStatus.submitted) and action:
            tracking = self.pending_actions[collection]
            # Editing an entry the server has never seen keeps it a create
            if not (action == SAVE and tracking.get(record_id) == CREATE):
                tracking[record_id] = action
        elif status == MutationStatus.confirmed:
            self.pending_actions[collection].pop(record_id, None)

    def forget(self, collection: str, record_id: str) -> None:
        self.sync_state[collection].pop(record_id, None)
        self.pending_actions[collection].pop(record_id, None)

    def status_of(self, collection: str, record_id: str) -> Optional[MutationStatus]:
        value = self.sync_state[collection].get(record_id)
        return MutationStatus(value) if value else None

    def entries_with_status(self, collection: str, *statuses: MutationStatus) -> List[str]:
        wanted = {status.value for status in statuses}
        return [record_id for record_id, value in self.sync_state[collection].items() if value in wanted]

    def prune_confirmed(self, collection: str) -> None:
        """Drop confirmed entries whose record is no longer in the collection"""
        present = {str(record.get("id")) for record in self.collection(collection)}
        tracking = self.sync_state[collection]
        for record_id in [rid for rid, value in tracking.items()
                          if value == MutationStatus.confirmed.value and rid not in present]:
            del tracking[record_id]

    # Settings

    def settings_payload(self) -> Dict[str, Any]:
        return {
            "investment": self.investment,
            "projectIdCounter": self.project_id_counter,
            "readFeedback": sorted(self.read_feedback),
            "readProjects": sorted(self.read_projects),
        }

    def apply_settings(self, settings: Dict[str, Any]) -> None:
        self.investment = settings.get("investment") or DEFAULT_INVESTMENT
        self.project_id_counter = int(settings.get("projectIdCounter") or 1)
        self.read_feedback = {str(i) for i in settings.get("readFeedback") or []}
        self.read_projects = {str(i) for i in settings.get("readProjects") or []}

    def next_project_id(self) -> str:
        """The id the next new project will get, skipping ids already present"""
        counter = self.project_id_counter
        while self.find("projects", format_project_id(counter)) is not None:
            counter += 1
        self.project_id_counter = counter
        return format_project_id(counter)

    # Cache blob

    def to_blob(self) -> Dict[str, Any]:
        return {
            "records": self.jobs,
            "feedback": self.feedback,
            "projects": self.projects,
            **self.settings_payload(),
            "syncState": self.sync_state,
            "pendingActions": self.pending_actions,
            "lastSync": self.last_sync or to_iso(utc_now()),
        }

    def load_blob(self, blob: Dict[str, Any]) -> None:
        self.jobs = list(blob.get("records") or [])
        self.feedback = list(blob.get("feedback") or [])
        self.projects = list(blob.get("projects") or [])
        self.apply_settings(blob)

        self.sync_state = _empty_tracking()
        self.sync_state.update({k: dict(v) for k, v in (blob.get("syncState") or {}).items()})
        # A submit interrupted before the server answered is retried by the sweep
        for entries in self.sync_state.values():
            for record_id, value in entries.items():
                if value == MutationStatus.submitted.value:
                    entries[record_id] = MutationStatus.pending_local.value
        self.pending_actions = _empty_tracking()
        self.pending_actions.update({k: dict(v) for k, v in (blob.get("pendingActions") or {}).items()})
        self.last_sync = blob.get("lastSync")

    @classmethod
    def from_blob(cls, blob: Dict[str, Any]) -> "AppState":
        state = cls()
        state.load_blob(blob)
        return state
