"""
API endpoints for needed projects
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..models.requests import ProjectPriority, ProjectRequest, ProjectStatus, SortOrder
from ..models.responses import DataResponse, MessageResponse, PaginatedResponse, Pagination
from ..services.record_service import RecordService
from .dependencies import get_record_service, require_admin

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Projects"])


@router.get("", response_model=PaginatedResponse)
async def list_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
    status: Optional[ProjectStatus] = None,
    priority: Optional[ProjectPriority] = None,
    record_service: RecordService = Depends(get_record_service),
):
    """List projects with pagination, sorting and status/priority filters"""
    items, pagination = await record_service.list_records(
        "projects",
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order.value,
        filters={
            "status": status.value if status else None,
            "priority": priority.value if priority else None,
        },
    )
    return PaginatedResponse(data=items, pagination=Pagination(**pagination))


@router.get("/{project_id}", response_model=DataResponse)
async def get_project(project_id: str, record_service: RecordService = Depends(get_record_service)):
    return DataResponse(data=await record_service.get_record("projects", project_id))


@router.post("", response_model=DataResponse, status_code=201, dependencies=[Depends(require_admin)])
async def create_project(project: ProjectRequest, record_service: RecordService = Depends(get_record_service)):
    """Create a project; an omitted id is allocated from the projectIdCounter setting"""
    record = await record_service.create_project(project)
    return DataResponse(data=record, message="Project created successfully")


@router.put("/{project_id}", response_model=DataResponse, dependencies=[Depends(require_admin)])
async def update_project(project_id: str, project: ProjectRequest,
                         record_service: RecordService = Depends(get_record_service)):
    record = await record_service.replace_project(project_id, project)
    return DataResponse(data=record, message="Project updated successfully")


@router.delete("/{project_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_project(project_id: str, record_service: RecordService = Depends(get_record_service)):
    await record_service.delete_record("projects", project_id)
    return MessageResponse(message="Project deleted successfully")
