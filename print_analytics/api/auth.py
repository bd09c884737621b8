"""
Admin authentication endpoints
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from ..models.requests import LoginRequest
from ..models.responses import LoginResponse, VerifyResponse
from ..services.auth_service import AuthService
from ..utils.exceptions import ValidationError
from .dependencies import auth_rate_limit, get_auth_service, get_client_ip, require_admin

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Authentication"])


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_by_alias=True,
    dependencies=[Depends(auth_rate_limit)],
)
async def login(
    body: LoginRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Exchange the admin password for a short-lived token

    Returns 400 when no password is sent and 401 when it is wrong.
    """
    client_ip = get_client_ip(request)
    user_agent = request.headers.get("user-agent")

    if not body.password:
        await auth_service.record_attempt(client_ip, user_agent, body.action or "login", False)
        raise ValidationError("Password is required", [
            {"field": "password", "message": "Password is required"}
        ])

    result = await auth_service.login(body.password, client_ip, user_agent, body.action)
    return LoginResponse(token=result["token"], expires_at=result["expires_at"])


@router.post("/verify", response_model=VerifyResponse)
async def verify(claims: Dict[str, Any] = Depends(require_admin)):
    """Check that the bearer token is still valid"""
    return VerifyResponse(user=claims)
