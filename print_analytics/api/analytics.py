"""
Dashboard aggregates, recomputed on every request
"""

from fastapi import APIRouter, Depends

from ..models.responses import DashboardStats, DataResponse
from ..services.record_service import RecordService
from .dependencies import get_record_service

router = APIRouter(tags=["Analytics"])


@router.get("/dashboard", response_model=DataResponse)
async def dashboard(record_service: RecordService = Depends(get_record_service)):
    stats = DashboardStats(**await record_service.dashboard_stats())
    return DataResponse(data=stats.model_dump(by_alias=True, mode="json"))
