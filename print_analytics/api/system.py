"""
Health endpoint
"""

import logging

from fastapi import APIRouter, Depends, Request

from .. import __version__
from ..models.responses import HealthResponse
from ..services.record_service import RecordService
from .dependencies import get_record_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, record_service: RecordService = Depends(get_record_service)):
    """Liveness plus store connectivity; the client probes this before reconciling"""
    storage = record_service.storage
    connected = await storage.ping()
    if not connected:
        logger.warning(f"Health check: {storage.name} store unreachable")

    return HealthResponse(
        status="OK",
        message="3D Printing Analytics API is running",
        database="connected" if connected else "disconnected",
        version=__version__,
        features={
            "authentication": bool(request.app.state.auth_service.admin_password_hash),
            "rateLimit": True,
            "imageUpload": True,
            "dataValidation": True,
            "sqlStorage": storage.name == "sqlite",
        },
    )
