"""
Record service - domain rules on top of the storage backend

Handles identity assignment, derived job costs, timestamps, project id
allocation, settings merges and dashboard aggregates. Backends never see a
record that has not passed through here.
"""

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from ..models.database import COLLECTION_MODELS
from ..models.requests import FeedbackRequest, JobRequest, ProjectRequest
from ..utils import costing
from ..utils.exceptions import NotFoundError, ValidationError
from ..utils.identifiers import format_project_id, generate_time_id
from ..utils.timeutils import monotonic_update, to_iso, utc_now
from ..utils.validators import validate_sort
from .storage import StorageBackend

logger = logging.getLogger(__name__)

PROJECT_COUNTER_KEY = "projectIdCounter"

# Whitelisted sort keys per collection
SORTABLE_FIELDS = {
    collection: list(model.FIELD_COLUMNS)
    for collection, model in COLLECTION_MODELS.items()
}

FILTER_FIELDS = {
    "jobs": ("status", "category"),
    "feedback": ("status", "category"),
    "projects": ("status", "priority"),
}

ENTITY_NAMES = {
    "jobs": "Job",
    "feedback": "Feedback",
    "projects": "Project",
}


def build_pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


class RecordService:
    """Service for job, feedback, project and settings operations"""

    def __init__(self, storage: StorageBackend):
        self.storage = storage
        # Serialises id allocation with the insert that consumes it
        self._id_lock = asyncio.Lock()

    # Queries

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        limit: int = 100,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        filters: Optional[Dict[str, Any]] = None,
    ) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        """
        Get one page of a collection

        Returns:
            (records, pagination block)
        """
        validate_sort(sort_by, sort_order, SORTABLE_FIELDS[collection])
        if page < 1 or limit < 1:
            raise ValidationError("Validation failed", [
                {"field": "page" if page < 1 else "limit", "message": "Must be a positive integer"}
            ])

        allowed = FILTER_FIELDS[collection]
        active_filters = {
            field: value for field, value in (filters or {}).items()
            if field in allowed and value is not None
        }

        items, total = await self.storage.list_records(
            collection,
            filters=active_filters,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
        return items, build_pagination(page, limit, total)

    async def get_record(self, collection: str, record_id: str) -> Dict[str, Any]:
        record = await self.storage.get_record(collection, record_id)
        if record is None:
            raise NotFoundError(f"{ENTITY_NAMES[collection]} not found")
        return record

    # Jobs

    def _job_fields(self, request: JobRequest) -> Dict[str, Any]:
        """Trusted inputs plus freshly derived cost fields"""
        fields = request.primitive_fields()
        derived = costing.compute_job_costs(
            request.printing_time_mins,
            request.print_price,
            request.oem_cost,
            fields["quantities"],
        )

        mismatches = costing.find_mismatches(request.submitted_derived_fields(), derived)
        if mismatches:
            logger.warning(f"Ignoring client-computed job fields that disagree with server: {mismatches}")

        fields.update(derived)
        return fields

    async def create_job(self, request: JobRequest) -> Dict[str, Any]:
        fields = self._job_fields(request)
        async with self._id_lock:
            record_id = await self._time_based_id("jobs", request.id)
            return await self._insert("jobs", record_id, fields)

    async def replace_job(self, record_id: str, request: JobRequest) -> Dict[str, Any]:
        return await self._replace("jobs", record_id, self._job_fields(request))

    # Feedback

    async def create_feedback(self, request: FeedbackRequest) -> Dict[str, Any]:
        fields = request.record_fields()
        async with self._id_lock:
            record_id = await self._time_based_id("feedback", request.id)
            return await self._insert("feedback", record_id, fields)

    # Projects

    async def create_project(self, request: ProjectRequest) -> Dict[str, Any]:
        fields = request.record_fields()
        async with self._id_lock:
            record_id = await self._project_id(request.id)
            return await self._insert("projects", record_id, fields)

    async def replace_project(self, record_id: str, request: ProjectRequest) -> Dict[str, Any]:
        return await self._replace("projects", record_id, request.record_fields())

    # Shared write paths

    async def delete_record(self, collection: str, record_id: str) -> None:
        deleted = await self.storage.delete_record(collection, record_id)
        if not deleted:
            raise NotFoundError(f"{ENTITY_NAMES[collection]} not found")

    async def _insert(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        now = to_iso(utc_now())
        record = {**fields, "id": record_id, "createdAt": now, "updatedAt": now}
        return await self.storage.insert_record(collection, record)

    async def _replace(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        existing = await self.get_record(collection, record_id)
        record = {
            **fields,
            "id": record_id,
            "createdAt": existing.get("createdAt"),
            "updatedAt": to_iso(monotonic_update(existing.get("updatedAt"))),
        }
        updated = await self.storage.replace_record(collection, record_id, record)
        if updated is None:
            raise NotFoundError(f"{ENTITY_NAMES[collection]} not found")
        return updated

    async def _time_based_id(self, collection: str, requested: Optional[str]) -> str:
        """Keep a client-supplied id when it is free, otherwise mint one"""
        if requested and await self.storage.get_record(collection, requested) is None:
            return requested
        if requested:
            logger.info(f"{collection} id {requested} already taken, generating a new one")
        record_id = generate_time_id()
        while await self.storage.get_record(collection, record_id) is not None:
            record_id = generate_time_id()
        return record_id

    async def _project_id(self, requested: Optional[str]) -> str:
        settings = await self.storage.get_settings()
        counter = int(settings.get(PROJECT_COUNTER_KEY) or 1)

        if requested:
            if await self.storage.get_record("projects", requested) is not None:
                raise ValidationError("Validation failed", [
                    {"field": "id", "message": f"Project ID {requested} already exists"}
                ])
            # Keep server allocation ahead of client-generated ids
            if int(requested) >= counter:
                await self.storage.upsert_settings({PROJECT_COUNTER_KEY: int(requested) + 1})
            return requested

        record_id = format_project_id(counter)
        while await self.storage.get_record("projects", record_id) is not None:
            counter += 1
            record_id = format_project_id(counter)
        await self.storage.upsert_settings({PROJECT_COUNTER_KEY: counter + 1})
        return record_id

    # Settings

    async def get_settings(self) -> Dict[str, Any]:
        return await self.storage.get_settings()

    async def update_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert the given keys; keys not listed are left untouched"""
        if not values:
            return await self.storage.get_settings()
        return await self.storage.upsert_settings(values)

    # Analytics

    async def dashboard_stats(self) -> Dict[str, Any]:
        return {
            "job_count": await self.storage.count_records("jobs"),
            "feedback_count": await self.storage.count_records("feedback"),
            "project_count": await self.storage.count_records("projects"),
            "total_savings": round(await self.storage.sum_field("jobs", "totalSavings"), 2),
            "total_printing_time": round(await self.storage.sum_field("jobs", "printingTimeHrs"), 2),
        }
