"""
Online/offline dual-write and the periodic reconciliation sweep

Every user mutation goes through ``SyncEngine.try_submit``. When the server
cannot take it, the change is kept in the local cache as ``pending-local``
and pushed again by ``reconcile``, which runs every ``interval`` seconds.
A pushed edit overwrites the server copy unconditionally (last write wins).
A pushed create is always a POST, so an id already taken on the server
ends up as a conflict instead of replacing someone else's record.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .api_client import (
    AnalyticsApiClient, ApiAuthError, ApiNotFoundError, ApiRequestError, ApiResponseError
)
from .local_cache import LocalCache
from .state import COLLECTIONS, CREATE, DELETE, SAVE, SETTINGS, SETTINGS_ID, AppState, MutationStatus
from ..utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)

# Collections the server can update in place; feedback is create-only
UPDATABLE = ("jobs", "projects")

NotifyCallback = Callable[[str, str], None]


def log_notification(message: str, level: str = "info") -> None:
    log_level = {
        "success": logging.INFO,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }.get(level, logging.INFO)
    logger.log(log_level, message)


@dataclass
class Mutation:
    """One user change: create/save/delete a record, or write the settings bag"""
    collection: str
    action: str
    record_id: str
    payload: Optional[Dict[str, Any]] = None


class SyncEngine:
    """Dual-write plus reconciliation over an ``AppState``"""

    def __init__(
        self,
        state: AppState,
        api: AnalyticsApiClient,
        cache: LocalCache,
        notify: Optional[NotifyCallback] = None,
        interval_seconds: int = 30,
    ):
        self.state = state
        self.api = api
        self.cache = cache
        self.notify = notify or log_notification
        self.interval = interval_seconds
        self.online = True
        self.is_running = False
        self._task: Optional[asyncio.Task] = None

    # Persistence

    def persist(self) -> None:
        self.cache.save_state(self.state.to_blob())

    def set_online(self, flag: bool) -> None:
        self.online = flag

    # Dual-write

    def _apply_locally(self, mutation: Mutation) -> None:
        if mutation.collection == SETTINGS:
            return
        if mutation.action == DELETE:
            self.state.remove(mutation.collection, mutation.record_id)
        else:
            self.state.upsert(mutation.collection, mutation.payload)

    def _save_locally(self, mutation: Mutation) -> MutationStatus:
        self._apply_locally(mutation)
        self.state.mark(mutation.collection, mutation.record_id, MutationStatus.pending_local, mutation.action)
        self.persist()
        self.notify("Saved locally only. Will sync when online.", "warning")
        return MutationStatus.pending_local

    async def _send(self, mutation: Mutation, action: str) -> Optional[Dict[str, Any]]:
        collection = mutation.collection
        if collection == SETTINGS:
            return await self.api.update_settings(mutation.payload)
        if action == DELETE:
            await self.api.delete(collection, mutation.record_id)
            return None
        if action == CREATE or collection not in UPDATABLE:
            return await self.api.create(collection, mutation.payload)
        return await self.api.update(collection, mutation.record_id, mutation.payload)

    async def try_submit(self, mutation: Mutation) -> MutationStatus:
        """
        Send a mutation to the server, falling back to the local cache

        Returns:
            ``confirmed`` when the server accepted it, else ``pending-local``
        """
        if not self.online:
            return self._save_locally(mutation)

        self.state.mark(mutation.collection, mutation.record_id, MutationStatus.submitted, mutation.action)
        action = self.state.pending_actions[mutation.collection].get(mutation.record_id, mutation.action)
        try:
            saved = await self._send(mutation, action)
        except ApiRequestError as e:
            logger.warning(f"Submit of {mutation.collection}/{mutation.record_id} failed: {e}")
            if isinstance(e, ApiAuthError):
                self.clear_credentials()
                self.notify("Session expired. Please login again.", "warning")
            return self._save_locally(mutation)

        collection = mutation.collection
        record_id = mutation.record_id
        if collection != SETTINGS:
            if action == DELETE:
                self.state.remove(collection, record_id)
                self.state.forget(collection, record_id)
            elif saved:
                if str(saved.get("id")) != record_id:
                    # The server assigned a different id
                    self.state.forget(collection, record_id)
                    self.state.remove(collection, record_id)
                    record_id = str(saved["id"])
                self.state.upsert(collection, saved)
        if action != DELETE or collection == SETTINGS:
            self.state.mark(collection, record_id, MutationStatus.confirmed)

        await self._refresh_after_submit(mutation.collection)
        self.persist()
        return MutationStatus.confirmed

    async def _refresh_after_submit(self, collection: str) -> None:
        try:
            if collection == SETTINGS:
                await self.refresh_settings()
            else:
                await self.refresh(collection)
        except ApiRequestError as e:
            logger.warning(f"Refresh of {collection} after submit failed: {e}")

    def clear_credentials(self) -> None:
        self.state.auth_token = None
        self.state.session_expiry = None

    # Authoritative refresh

    async def refresh(self, collection: str) -> None:
        """Replace a collection with the server copy, keeping unsynced local entries on top"""
        server_records = await self.api.fetch_all(collection)
        tracking = self.state.pending_actions[collection]
        unsynced = set(self.state.entries_with_status(
            collection, MutationStatus.pending_local, MutationStatus.conflict
        ))

        local_first = []
        for record_id in unsynced:
            if tracking.get(record_id) == DELETE:
                continue
            record = self.state.find(collection, record_id)
            if record is not None:
                local_first.append(record)

        hidden = unsynced | {rid for rid, action in tracking.items() if action == DELETE}
        merged = local_first + [r for r in server_records if str(r.get("id")) not in hidden]
        setattr(self.state, collection, merged)
        self.state.prune_confirmed(collection)

    async def refresh_settings(self) -> None:
        if self.state.status_of(SETTINGS, SETTINGS_ID) == MutationStatus.pending_local:
            return
        self.state.apply_settings(await self.api.get_settings())

    async def load_all(self) -> None:
        for collection in COLLECTIONS:
            await self.refresh(collection)
        await self.refresh_settings()
        self.state.last_sync = to_iso(utc_now())

    # Reconciliation sweep

    async def _push(self, collection: str, record_id: str, action: str) -> bool:
        """
        Push one pending entry

        Returns:
            False when there was nothing left to push
        """
        if collection == SETTINGS:
            await self.api.update_settings(self.state.settings_payload())
            return True

        if action == DELETE:
            try:
                await self.api.delete(collection, record_id)
            except ApiNotFoundError:
                logger.info(f"{collection}/{record_id} already gone on server")
            return True

        record = self.state.find(collection, record_id)
        if record is None:
            return False

        if action == SAVE and collection in UPDATABLE:
            try:
                await self.api.update(collection, record_id, record)
            except ApiNotFoundError:
                await self.api.create(collection, record)
        else:
            await self.api.create(collection, record)
        return True

    async def reconcile(self) -> Dict[str, int]:
        """
        Probe the server and push every pending-local entry

        Returns:
            Counts of confirmed, conflict and still-pending entries
        """
        summary = {"confirmed": 0, "conflict": 0, "pending": 0}
        try:
            await self.api.health()
        except ApiRequestError as e:
            logger.info(f"Reconciliation skipped, server unreachable: {e}")
            self.online = False
            return summary
        self.online = True

        for collection in COLLECTIONS + (SETTINGS,):
            for record_id in self.state.entries_with_status(collection, MutationStatus.pending_local):
                action = self.state.pending_actions[collection].get(record_id, SAVE)
                try:
                    pushed = await self._push(collection, record_id, action)
                except ApiResponseError as e:
                    if e.status_code == 400:
                        logger.warning(f"Server rejected {collection}/{record_id}: {e} {e.details}")
                        self.state.mark(collection, record_id, MutationStatus.conflict)
                        self.notify(f"Could not sync {collection} entry {record_id}: {e}", "error")
                        summary["conflict"] += 1
                    else:
                        summary["pending"] += 1
                    continue
                except ApiRequestError as e:
                    if isinstance(e, ApiAuthError):
                        self.clear_credentials()
                    logger.info(f"{collection}/{record_id} stays pending: {e}")
                    summary["pending"] += 1
                    continue

                if pushed:
                    if action == DELETE:
                        self.state.forget(collection, record_id)
                    else:
                        self.state.mark(collection, record_id, MutationStatus.confirmed)
                    summary["confirmed"] += 1
                else:
                    self.state.forget(collection, record_id)

        if summary["confirmed"]:
            try:
                await self.load_all()
            except ApiRequestError as e:
                logger.warning(f"Reload after reconciliation failed: {e}")
            self.notify(f"Synced {summary['confirmed']} offline change(s) with the server", "success")
        if summary["confirmed"] or summary["conflict"]:
            self.persist()

        logger.info(f"Reconciliation finished: {summary}")
        return summary

    # Background loop

    async def start(self):
        """Start the background reconciliation task"""
        if self.is_running:
            logger.warning("Reconciliation loop already running")
            return

        self.is_running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Reconciliation loop started, every {self.interval}s")

    async def stop(self):
        """Stop the background reconciliation task"""
        if not self.is_running:
            return

        self.is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Reconciliation loop stopped")

    async def _poll_loop(self):
        while self.is_running:
            await asyncio.sleep(self.interval)
            try:
                await self.reconcile()
            except Exception as e:
                logger.error(f"Error in reconciliation loop: {e}", exc_info=True)
