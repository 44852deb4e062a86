"""
FastAPI application for the Release Tracker.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .db.base import init_database
from .errors import ReleaseTrackerError, StoreError
from .logging_config import configure_logging
from .releases.routes import router as releases_router
from .tickets.routes import router as tickets_router

logger = structlog.get_logger()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("starting", app_name=settings.app_name, environment=settings.environment)

    try:
        init_database()
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    logger.info("shutdown_complete")


app = FastAPI(
    title="Release Tracker",
    description="Tracks releases, their tickets and their component deliveries",
    version=importlib.metadata.version("release-tracker"),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReleaseTrackerError)
async def release_tracker_error_handler(
    request: Request, exc: ReleaseTrackerError
) -> JSONResponse:
    """Render domain errors the way HTTPException renders its detail."""
    if isinstance(exc, StoreError) and exc.status_code >= 500:
        logger.error(
            "store_error",
            path=request.url.path,
            error=exc.message,
            cause=repr(exc.__cause__),
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.get("/healthz", tags=["system"])
def healthz() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/version", tags=["system"])
def version() -> dict[str, str]:
    """Return the version of the application."""
    return {"version": importlib.metadata.version("release-tracker")}


app.include_router(releases_router, prefix=settings.api_base_path)
app.include_router(tickets_router, prefix=settings.api_base_path)
