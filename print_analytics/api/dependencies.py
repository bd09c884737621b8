"""
Shared FastAPI dependencies: services, rate limits and the admin gate
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.rate_limiter import RateLimiter
from ..services.auth_service import AuthService
from ..services.record_service import RecordService
from ..utils.exceptions import RateLimitError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_record_service(request: Request) -> RecordService:
    """Dependency to get the record service"""
    return request.app.state.record_service


def get_auth_service(request: Request) -> AuthService:
    """Dependency to get the auth service"""
    return request.app.state.auth_service


def _check_limit(limiter: RateLimiter, request: Request) -> None:
    client_ip = get_client_ip(request)
    if not limiter.is_allowed(client_ip):
        raise RateLimitError(
            f"Too many requests, retry in {limiter.retry_after(client_ip)} seconds"
        )


def api_rate_limit(request: Request) -> None:
    """General budget applied to every /api route"""
    _check_limit(request.app.state.rate_limiters["api"], request)


def auth_rate_limit(request: Request) -> None:
    """Stricter budget for login attempts"""
    _check_limit(request.app.state.rate_limiters["auth"], request)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Reject the request with 401 unless it carries a valid admin token"""
    token = credentials.credentials if credentials else None
    return auth_service.verify_token(token)
