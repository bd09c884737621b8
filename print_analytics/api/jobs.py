"""
API endpoints for print job records
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..models.requests import JobCategory, JobRequest, JobStatus, SortOrder
from ..models.responses import DataResponse, MessageResponse, PaginatedResponse, Pagination
from ..services.record_service import RecordService
from .dependencies import get_record_service, require_admin

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Jobs"])


@router.get("", response_model=PaginatedResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
    status: Optional[JobStatus] = None,
    category: Optional[JobCategory] = None,
    record_service: RecordService = Depends(get_record_service),
):
    """List jobs with pagination, sorting and status/category filters"""
    items, pagination = await record_service.list_records(
        "jobs",
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order.value,
        filters={
            "status": status.value if status else None,
            "category": category.value if category else None,
        },
    )
    return PaginatedResponse(data=items, pagination=Pagination(**pagination))


@router.get("/{job_id}", response_model=DataResponse)
async def get_job(job_id: str, record_service: RecordService = Depends(get_record_service)):
    return DataResponse(data=await record_service.get_record("jobs", job_id))


@router.post("", response_model=DataResponse, status_code=201, dependencies=[Depends(require_admin)])
async def create_job(job: JobRequest, record_service: RecordService = Depends(get_record_service)):
    """Create a job; cost and quantity totals are computed here, not trusted from the client"""
    record = await record_service.create_job(job)
    return DataResponse(data=record, message="Job created successfully")


@router.put("/{job_id}", response_model=DataResponse, dependencies=[Depends(require_admin)])
async def update_job(job_id: str, job: JobRequest, record_service: RecordService = Depends(get_record_service)):
    """Replace every field of an existing job"""
    record = await record_service.replace_job(job_id, job)
    return DataResponse(data=record, message="Job updated successfully")


@router.delete("/{job_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_job(job_id: str, record_service: RecordService = Depends(get_record_service)):
    await record_service.delete_record("jobs", job_id)
    return MessageResponse(message="Job deleted successfully")
