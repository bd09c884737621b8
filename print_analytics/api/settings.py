"""
API endpoints for the shared settings bag
"""

import logging

from fastapi import APIRouter, Depends

from ..models.requests import SettingsUpdateRequest
from ..models.responses import DataResponse
from ..services.record_service import RecordService
from .dependencies import get_record_service, require_admin

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Settings"])


@router.get("", response_model=DataResponse)
async def get_settings(record_service: RecordService = Depends(get_record_service)):
    return DataResponse(data=await record_service.get_settings())


@router.put("", response_model=DataResponse, dependencies=[Depends(require_admin)])
async def update_settings(body: SettingsUpdateRequest, record_service: RecordService = Depends(get_record_service)):
    """Upsert the given keys and return the full mapping"""
    settings = await record_service.update_settings(body.settings)
    return DataResponse(data=settings, message="Settings updated successfully")
