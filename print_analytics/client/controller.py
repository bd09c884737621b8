"""
View-facing client object

Holds the mirrored state and turns user actions into mutations for the
sync engine. Rendering is left to whatever UI drives it.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..core.config import get_default_config
from ..models.requests import FeedbackRequest, JobRequest, ProjectRequest
from ..utils import costing
from ..utils.exceptions import NotFoundError, ValidationError
from ..utils.identifiers import generate_time_id
from ..utils.timeutils import parse_iso, to_iso, utc_now
from ..utils.validators import format_validation_errors
from . import analytics
from .api_client import AnalyticsApiClient, ApiRequestError
from .local_cache import AUTH_TOKEN_KEY, SESSION_EXPIRY_KEY, LocalCache
from .state import CREATE, DELETE, SAVE, SETTINGS, SETTINGS_ID, AppState, MutationStatus
from .sync import Mutation, NotifyCallback, SyncEngine

logger = logging.getLogger(__name__)


def _validated(model, form: Dict[str, Any]):
    try:
        return model.model_validate(form)
    except PydanticValidationError as e:
        raise ValidationError("Validation failed", format_validation_errors(e.errors()))


class ClientController:
    """Client-side controller for jobs, feedback, projects and settings"""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        api: Optional[AnalyticsApiClient] = None,
        cache: Optional[LocalCache] = None,
        notify: Optional[NotifyCallback] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        client_config = (config or get_default_config())["client"]
        self.state = AppState()
        self.cache = cache or LocalCache(client_config["cache_dir"])
        self.api = api or AnalyticsApiClient(
            client_config["api_base_url"],
            token_provider=lambda: self.state.auth_token,
            timeout=client_config.get("request_timeout", 10.0),
            transport=transport,
        )
        self.sync = SyncEngine(
            self.state,
            self.api,
            self.cache,
            notify=notify,
            interval_seconds=client_config.get("sync_interval_seconds", 30),
        )

    @property
    def notify(self) -> NotifyCallback:
        return self.sync.notify

    @property
    def is_online(self) -> bool:
        return self.sync.online

    # Lifecycle

    async def start(self) -> None:
        """Restore session, probe the server, load data and start the sweep"""
        self.state.auth_token = self.cache.get_item(AUTH_TOKEN_KEY)
        self.state.session_expiry = self.cache.get_item(SESSION_EXPIRY_KEY)
        await self.check_connectivity()
        self.check_auth_status()
        await self.load_data()
        await self.sync.start()

    async def stop(self) -> None:
        await self.sync.stop()
        await self.api.close()

    async def check_connectivity(self) -> bool:
        try:
            await self.api.health()
            self.sync.set_online(True)
        except ApiRequestError as e:
            logger.error(f"Server connection failed: {e}")
            self.sync.set_online(False)
            self.notify("Connection failed. Using offline mode.", "warning")
        return self.sync.online

    async def set_online(self, flag: bool) -> None:
        """Browser online/offline signal"""
        self.sync.set_online(flag)
        if flag:
            self.notify("Connection restored. Syncing data...", "info")
            await self.sync.reconcile()
        else:
            self.notify("Connection lost. Working offline.", "warning")

    async def load_data(self) -> None:
        """Server copy when reachable, otherwise the local cache"""
        cached = self.cache.load_state()
        if cached:
            self.state.load_blob(cached)

        if not self.sync.online:
            return
        try:
            await self.sync.load_all()
        except ApiRequestError as e:
            logger.error(f"Data loading failed: {e}")
            self.notify("Connection failed. Using offline mode.", "warning")
            return
        self.sync.persist()
        logger.info("Data loaded successfully from server")

    # Auth

    def check_auth_status(self) -> bool:
        """True while a stored token has not expired; clears it otherwise"""
        if not (self.state.auth_token and self.state.session_expiry):
            return False
        expiry = parse_iso(self.state.session_expiry)
        if expiry is not None and utc_now() < expiry:
            return True
        self.logout()
        return False

    async def login(self, password: str, action: Optional[str] = None) -> bool:
        try:
            response = await self.api.login(password, action)
        except ApiRequestError as e:
            logger.warning(f"Authentication failed: {e}")
            self.notify("Incorrect password!", "error")
            return False

        self.state.auth_token = response["token"]
        self.state.session_expiry = response["expiresAt"]
        self.cache.set_item(AUTH_TOKEN_KEY, self.state.auth_token)
        self.cache.set_item(SESSION_EXPIRY_KEY, self.state.session_expiry)
        return True

    def logout(self) -> None:
        self.sync.clear_credentials()
        self.cache.remove_item(AUTH_TOKEN_KEY)
        self.cache.remove_item(SESSION_EXPIRY_KEY)

    # Records

    def _timestamps(self, collection: str, record_id: str) -> Dict[str, str]:
        now = to_iso(utc_now())
        existing = self.state.find(collection, record_id)
        return {
            "createdAt": existing.get("createdAt") if existing else now,
            "updatedAt": now,
        }

    async def _submit(self, collection: str, record_id: str, payload: Dict[str, Any], is_new: bool) -> Dict[str, Any]:
        action = CREATE if is_new else SAVE
        status = await self.sync.try_submit(Mutation(collection, action, record_id, payload))
        if status == MutationStatus.confirmed:
            self.notify(f"{collection.capitalize()} saved successfully!", "success")
        return {"status": status, "record": payload}

    async def save_job(self, form: Dict[str, Any], editing_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate a job form, derive its costs and submit it

        Returns:
            ``{"status": MutationStatus, "record": dict}``
        """
        request = _validated(JobRequest, form)
        fields = request.primitive_fields()
        fields.update(costing.compute_job_costs(
            request.printing_time_mins, request.print_price, request.oem_cost, fields["quantities"]
        ))

        record_id = editing_id or request.id or generate_time_id()
        record = {"id": record_id, **fields, **self._timestamps("jobs", record_id)}
        return await self._submit("jobs", record_id, record, is_new=editing_id is None)

    async def save_feedback(self, form: Dict[str, Any]) -> Dict[str, Any]:
        request = _validated(FeedbackRequest, form)
        record_id = request.id or generate_time_id()
        record = {"id": record_id, **request.record_fields(), **self._timestamps("feedback", record_id)}
        return await self._submit("feedback", record_id, record, is_new=True)

    async def save_project(self, form: Dict[str, Any], editing_id: Optional[str] = None) -> Dict[str, Any]:
        is_new = editing_id is None
        if is_new and not form.get("id"):
            form = {**form, "id": self.next_project_id()}

        request = _validated(ProjectRequest, form)
        record_id = editing_id or request.id
        if is_new:
            if self.state.find("projects", record_id) is not None:
                raise ValidationError("Validation failed", [
                    {"field": "id", "message": f"Project ID {record_id} already exists"}
                ])
            self.state.project_id_counter = max(self.state.project_id_counter, int(record_id) + 1)

        record = {"id": record_id, **request.record_fields(), **self._timestamps("projects", record_id)}
        return await self._submit("projects", record_id, record, is_new=is_new)

    async def _delete(self, collection: str, record_id: str) -> MutationStatus:
        if self.state.find(collection, record_id) is None:
            raise NotFoundError(f"{collection} entry {record_id} not found")
        status = await self.sync.try_submit(Mutation(collection, DELETE, record_id))
        if status == MutationStatus.confirmed:
            self.notify("Deleted successfully!", "success")
        return status

    async def delete_job(self, record_id: str) -> MutationStatus:
        return await self._delete("jobs", record_id)

    async def delete_feedback(self, record_id: str) -> MutationStatus:
        return await self._delete("feedback", record_id)

    async def delete_project(self, record_id: str) -> MutationStatus:
        return await self._delete("projects", record_id)

    async def mark_project_completed(self, record_id: str) -> Dict[str, Any]:
        project = self.state.find("projects", record_id)
        if project is None:
            raise NotFoundError(f"Project {record_id} not found")
        form = {**project, "status": "completed"}
        return await self.save_project(form, editing_id=record_id)

    # Settings

    async def _save_settings(self) -> MutationStatus:
        mutation = Mutation(SETTINGS, SAVE, SETTINGS_ID, self.state.settings_payload())
        return await self.sync.try_submit(mutation)

    async def update_investment(self, value: float) -> MutationStatus:
        if value is None or value < 0:
            raise ValidationError("Validation failed", [
                {"field": "investment", "message": "Investment must be a non-negative number"}
            ])
        self.state.investment = value
        return await self._save_settings()

    async def mark_feedback_read(self, record_id: str) -> MutationStatus:
        self.state.read_feedback.add(str(record_id))
        return await self._save_settings()

    async def mark_project_read(self, record_id: str) -> MutationStatus:
        self.state.read_projects.add(str(record_id))
        return await self._save_settings()

    # Views

    def unread_counts(self) -> Dict[str, int]:
        return {
            "feedback": sum(1 for f in self.state.feedback if str(f.get("id")) not in self.state.read_feedback),
            "projects": sum(
                1 for p in self.state.projects
                if str(p.get("id")) not in self.state.read_projects and p.get("status") != "completed"
            ),
        }

    def dashboard(self) -> Dict[str, Any]:
        stats = analytics.compute_dashboard(
            self.state.jobs,
            self.state.investment,
            feedback_count=len(self.state.feedback),
            project_count=len(self.state.projects),
        )
        stats["lastUpdated"] = to_iso(datetime.now(timezone.utc))
        return stats

    def next_project_id(self) -> str:
        return self.state.next_project_id()
