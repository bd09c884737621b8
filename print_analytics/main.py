from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn
import logging

from print_analytics import __version__
from print_analytics.core.config import load_config
from print_analytics.core.logger import setup_logging
from print_analytics.core.rate_limiter import RateLimiter
from print_analytics.models.responses import ErrorResponse
from print_analytics.services.auth_service import AuthService
from print_analytics.services.record_service import RecordService
from print_analytics.services.storage import StorageBackend, create_storage
from print_analytics.utils.exceptions import (
    AuthorizationError, NotFoundError, PrintAnalyticsError, RateLimitError, ValidationError
)
from print_analytics.utils.validators import format_validation_errors

# Import all API routers
from print_analytics.api import analytics, auth, feedback, jobs, projects, settings, system
from print_analytics.api.dependencies import api_rate_limit

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    config = app.state.config
    logger.info("Starting 3D Printing Analytics API...")
    await app.state.storage.initialize()
    logger.info(f"Storage backend '{app.state.storage.name}' ready")
    logger.info(f"Environment: {config['server']['environment']}")

    yield

    # Shutdown
    logger.info("Shutting down 3D Printing Analytics API...")
    await app.state.storage.close()
    logger.info("3D Printing Analytics API shutdown complete")


def _error_response(status_code: int, error: str, message: Optional[str] = None,
                    details=None, available_routes=None, headers=None) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        details=details,
        available_routes=available_routes,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


def _available_routes(app: FastAPI):
    routes = []
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api"):
            for method in sorted(route.methods):
                routes.append(f"{method} {route.path}")
    return routes


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed body or query parameters"""
        details = format_validation_errors(exc.errors())
        logger.warning(f"Validation failed for {request.method} {request.url.path}: {details}")
        return _error_response(400, "Validation failed", details=details)

    @app.exception_handler(PrintAnalyticsError)
    async def application_error_handler(request: Request, exc: PrintAnalyticsError):
        """Handle custom application exceptions"""
        if isinstance(exc, ValidationError):
            logger.warning(f"{request.method} {request.url.path}: {exc} {exc.errors}")
            return _error_response(400, str(exc), details=exc.errors or None)
        if isinstance(exc, NotFoundError):
            return _error_response(404, str(exc))
        if isinstance(exc, AuthorizationError):
            logger.warning(f"Unauthorized {request.method} {request.url.path}: {exc}")
            return _error_response(401, str(exc))
        if isinstance(exc, RateLimitError):
            return _error_response(429, "Too many requests", message=str(exc))

        logger.error(f"Application error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return _error_response(500, "Internal server error", message=_internal_message(app, exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions, including unmatched routes"""
        if exc.status_code == 404:
            return _error_response(
                404,
                "Not Found",
                message=f"Route {request.url.path} not found",
                available_routes=_available_routes(app),
            )
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error(f"Unexpected error: {exc}", exc_info=True)
        return _error_response(500, "Internal server error", message=_internal_message(app, exc))


def _internal_message(app: FastAPI, exc: Exception) -> str:
    if app.state.config["server"]["environment"] == "development":
        return str(exc)
    return "Something went wrong"


def create_app(config: Optional[Dict[str, Any]] = None, storage: Optional[StorageBackend] = None) -> FastAPI:
    """
    Build the application

    Args:
        config: Finalized configuration; loaded from config.yaml/.env when omitted
        storage: Backend override, otherwise built from ``config['storage']``
    """
    if config is None:
        config = load_config()

    server_config = config["server"]
    app = FastAPI(
        title=server_config.get("title", "3D Printing Analytics API"),
        description=server_config.get("description", ""),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    storage = storage or create_storage(config)
    app.state.config = config
    app.state.storage = storage
    app.state.record_service = RecordService(storage)
    app.state.auth_service = AuthService.from_config(config, storage)
    app.state.rate_limiters = {
        name: RateLimiter(name, limit["max_calls"], limit["window_seconds"])
        for name, limit in config["rate_limits"].items()
    }

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get("cors", {}).get("allow_origins", ["*"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    rate_limited = [Depends(api_rate_limit)]
    app.include_router(system.router, prefix="/api", dependencies=rate_limited)
    app.include_router(auth.router, prefix="/api/auth", dependencies=rate_limited)
    app.include_router(jobs.router, prefix="/api/jobs", dependencies=rate_limited)
    app.include_router(feedback.router, prefix="/api/feedback", dependencies=rate_limited)
    app.include_router(projects.router, prefix="/api/projects", dependencies=rate_limited)
    app.include_router(settings.router, prefix="/api/settings", dependencies=rate_limited)
    app.include_router(analytics.router, prefix="/api/analytics", dependencies=rate_limited)

    return app


def main():
    """Console entry point: load configuration and serve with uvicorn"""
    config = load_config()
    setup_logging(**config["logging"])

    try:
        uvicorn.run(
            "print_analytics.main:create_app",
            factory=True,
            host=config["server"]["host"],
            port=config["server"]["port"],
            log_level="info",
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise


if __name__ == "__main__":
    main()
