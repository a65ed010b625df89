# src/melodyshare/main.py
"""Main entry point for the MelodyShare application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from melodyshare.api.v1 import (
    communities_router,
    songs_router,
    tracks_router,
    users_router,
)
from melodyshare.core.errors import (
    MelodyShareError,
    NotFoundError,
    NotInCommunity,
    RateLimited,
    StoreUnavailable,
    TrackSearchError,
    ValidationError,
)
from melodyshare.core.settings import settings
from melodyshare.db.session import create_tables, engine
from melodyshare.services.feed_watcher import ChangeWatcher
from melodyshare.services.track_search import TrackSearchDisabledError, get_track_search

logger = logging.getLogger(__name__)

HTTP_UNPROCESSABLE = 422

# Initialize FastAPI app
app = FastAPI(
    title="MelodyShare API",
    description="Invite-only communities sharing one song a day",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(communities_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(songs_router, prefix="/api/v1")
app.include_router(tracks_router, prefix="/api/v1")


def _error_response(
    status_code: int,
    exc: MelodyShareError,
    *,
    field: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc) if field is None else exc.reason, "field": field},
        headers=headers,
    )


@app.exception_handler(ValidationError)
async def handle_validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(HTTP_UNPROCESSABLE, exc, field=exc.field)


@app.exception_handler(NotFoundError)
async def handle_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(NotInCommunity)
async def handle_not_in_community(_request: Request, exc: NotInCommunity) -> JSONResponse:
    return _error_response(status.HTTP_409_CONFLICT, exc)


@app.exception_handler(RateLimited)
async def handle_rate_limited(_request: Request, exc: RateLimited) -> JSONResponse:
    return _error_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        exc,
        headers={"Retry-After": str(exc.retry_after_seconds)},
    )


@app.exception_handler(StoreUnavailable)
async def handle_store_unavailable(_request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error("Store unavailable", exc_info=exc)
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)


@app.exception_handler(TrackSearchError)
async def handle_track_search_error(_request: Request, exc: TrackSearchError) -> JSONResponse:
    if isinstance(exc, TrackSearchDisabledError):
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)
    logger.warning("Track search failed: %s", exc)
    return _error_response(status.HTTP_502_BAD_GATEWAY, exc)


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if settings.auto_create_tables:
        await create_tables()
    if settings.realtime_poll_interval_seconds > 0:
        watcher = ChangeWatcher()
        await watcher.start()
        app.state.change_watcher = watcher
    else:
        app.state.change_watcher = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    watcher: ChangeWatcher | None = getattr(app.state, "change_watcher", None)
    if watcher:
        await watcher.stop()
    await get_track_search().close()
    await engine.dispose()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Invite-only communities sharing one song a day",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("melodyshare.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
