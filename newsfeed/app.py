"""
FastAPI application entry point for the newsfeed backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from newsfeed.config import Settings, get_settings
from newsfeed.dependencies import Backend, build_backend, build_storage
from newsfeed.errors import (
    BackendUnavailable,
    NewsfeedError,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from newsfeed.routes import router

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFound: 404,
    ValidationError: 422,
    PermissionDenied: 403,
    BackendUnavailable: 503,
}


def status_for(exc: NewsfeedError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return 500


async def handle_newsfeed_error(request: Request, exc: NewsfeedError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status, content={"detail": exc.message, "error": exc.kind}
    )


def create_app(
    settings: Optional[Settings] = None, backend: Optional[Backend] = None
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    if backend is None:
        backend = build_backend(settings.backend_config(), build_storage(settings))

    app = FastAPI(title="Newsfeed Backend", version="0.1.0")
    app.state.backend = backend
    app.add_exception_handler(NewsfeedError, handle_newsfeed_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app
