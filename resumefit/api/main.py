"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..exceptions import ConcurrencyRejectedError, InputValidationError, ResumeFitError
from ..logging_config import configure_logging
from ..service import ResumeFitService, build_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle events."""
    if getattr(app.state, "service", None) is None:
        app.state.service = build_service()
    service: ResumeFitService = app.state.service
    await service.startup()
    logger.info("ResumeFit AI service ready")

    yield

    await service.shutdown()
    logger.info("Shutting down ResumeFit AI service.")


def _error_response(exc: ResumeFitError) -> JSONResponse:
    body = {"success": False, "error": exc.to_dict()}
    if isinstance(exc, ConcurrencyRejectedError):
        body["requestId"] = exc.request_id
        body["durationSeconds"] = exc.duration_seconds
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(service: Optional[ResumeFitService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    A prebuilt ``service`` replaces the one wired from config.
    """
    configure_logging()
    app = FastAPI(
        title="ResumeFit AI Service",
        description="Resume to job description alignment with retrieval-augmented analysis.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service

    # The caller is a browser extension with no fixed origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ResumeFitError)
    async def resumefit_error_handler(request: Request, exc: ResumeFitError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
        return _error_response(InputValidationError(f"Invalid request body: {detail}"))

    from .routes import analysis, chat, store
    app.include_router(analysis.router, prefix="/api")
    app.include_router(chat.router, prefix="/api")
    app.include_router(store.router, prefix="/api")

    @app.get("/health")
    @app.get("/api/health")
    async def health(request: Request):
        return await request.app.state.service.health()

    return app


# For uvicorn direct run
app = create_app()
