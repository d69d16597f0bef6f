"""imiiza Backend - Main FastAPI Application

Visa application intermediary platform: applicants submit applications and
documents, staff move them through the status workflow.

Every error response uses the ``{"success": false, "message": ...}``
envelope.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .applications.router import router as applications_router
from .applications.router import statuses_router
from .applications.router_agent import router as agent_router
from .auth.router import router as auth_router
from .config import get_settings
from .domain.applications.errors import (
    ApplicationAlreadyAssignedError,
    ApplicationError,
    ApplicationNotFoundError,
    ApplicationValidationError,
    ConcurrentUpdateError,
)
from .domain.documents.ports.object_storage_port import StorageError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .uploads.router import router as uploads_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("imiiza API starting up...")
    logger.info(f"Environment: {settings.ENV}")
    yield
    logger.info("imiiza API shutting down...")


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic validation errors, with field-level details."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return _error(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Request validation failed",
        error="validation_error",
        details=exc.errors(),
    )


async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    """Map workflow errors to HTTP status codes."""
    if isinstance(exc, ApplicationNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, "Application not found")
    if isinstance(exc, ApplicationValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), field=exc.field)
    if isinstance(exc, ConcurrentUpdateError):
        return _error(status.HTTP_409_CONFLICT, str(exc), error="concurrent_update")
    if isinstance(exc, ApplicationAlreadyAssignedError):
        return _error(status.HTTP_409_CONFLICT, str(exc), error="already_assigned")
    logger.error(f"Unmapped application error on {request.method} {request.url.path}", exc_info=exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Object storage error on {request.method} {request.url.path}", exc_info=exc)
    return _error(
        status.HTTP_502_BAD_GATEWAY,
        "Document storage is unavailable. Please try again later.",
        error="storage_error",
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Logs the full error but returns a generic message."""
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "A database error occurred. Please try again later.",
        error="database_error",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        error="internal_error",
    )


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, handlers and routers."""
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    is_production = settings.ENV == "production"
    app = FastAPI(
        title="imiiza API",
        description="Visa application intermediary platform",
        version=__version__,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(StorageError, storage_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(observability_router)
    app.include_router(auth_router)
    app.include_router(applications_router)
    app.include_router(statuses_router)
    app.include_router(agent_router)
    app.include_router(uploads_router)

    return app


app = create_app()
