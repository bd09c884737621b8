"""
API endpoints for user feedback

Feedback is public to submit and list; only deletion needs the admin token.
There is no update in place.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..models.requests import FeedbackCategory, FeedbackRequest, FeedbackStatus, SortOrder
from ..models.responses import DataResponse, MessageResponse, PaginatedResponse, Pagination
from ..services.record_service import RecordService
from .dependencies import get_record_service, require_admin

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Feedback"])


@router.get("", response_model=PaginatedResponse)
async def list_feedback(
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
    status: Optional[FeedbackStatus] = None,
    category: Optional[FeedbackCategory] = None,
    record_service: RecordService = Depends(get_record_service),
):
    items, pagination = await record_service.list_records(
        "feedback",
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


@router.get("/{feedback_id}", response_model=DataResponse)
async def get_feedback(feedback_id: str, record_service: RecordService = Depends(get_record_service)):
    return DataResponse(data=await record_service.get_record("feedback", feedback_id))


@router.post("", response_model=DataResponse, status_code=201)
async def submit_feedback(feedback: FeedbackRequest, record_service: RecordService = Depends(get_record_service)):
    record = await record_service.create_feedback(feedback)
    logger.info(f"Feedback {record['id']} received ({record['category']}, rating {record['rating']})")
    return DataResponse(data=record, message="Feedback submitted successfully")


@router.delete("/{feedback_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_feedback(feedback_id: str, record_service: RecordService = Depends(get_record_service)):
    await record_service.delete_record("feedback", feedback_id)
    return MessageResponse(message="Feedback deleted successfully")
