"""
FastAPI Application Factory & Configuration.

This module initializes the trace viewer's FastAPI application. It is
responsible for:
1.  **Middleware Setup**: CORS, so snapshot iframes and the viewer UI can fetch resources.
2.  **Exception Handling**: Global handlers so every error returns structured JSON.
3.  **Routing**: `/health` plus the viewer router (mounted last, it owns a catch-all).
4.  **Lifecycle**: A background task that periodically evicts traces of dead sessions.

Design Pattern
--------------
An **Application Factory** (`create_app`). Tests build isolated apps and may
inject their own :class:`TraceRouter` and :class:`SessionRegistry`.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tracereplay import __version__
from tracereplay.api.routers import viewer
from tracereplay.api.sessions import SessionRegistry
from tracereplay.api.trace_cache import TraceRouter
from tracereplay.core.errors import NotFoundError
from tracereplay.core.settings import get_logger, load_settings

logger = get_logger(__name__)


async def _collect_periodically(
    trace_router: TraceRouter, sessions: SessionRegistry, interval: float
) -> None:
    while True:
        await asyncio.sleep(interval)
        evicted = await trace_router.collect_garbage()
        expired = sessions.expire()
        if evicted or expired:
            logger.info(
                "Garbage collection evicted %d trace(s) and %d session(s)",
                len(evicted),
                len(expired),
            )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    ASGI Lifespan context manager.

    - **Startup**: start the periodic garbage collection task.
    - **Shutdown**: cancel it.
    """
    interval = load_settings().gc_interval_seconds
    logger.info("Trace viewer starting up (gc every %.0fs)", interval)
    task = asyncio.create_task(
        _collect_periodically(app.state.trace_router, app.state.sessions, interval)
    )

    yield

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    logger.info("Trace viewer shut down")


def create_app(
    trace_router: TraceRouter | None = None,
    sessions: SessionRegistry | None = None,
) -> FastAPI:
    """
    Construct and configure the trace viewer FastAPI application.

    Parameters
    ----------
    trace_router:
        Trace cache to serve from. Defaults to one backed by ``sessions``.
    sessions:
        Session registry. Defaults to one with the configured TTL.

    Returns
    -------
    FastAPI
        The configured ASGI application ready to be served by Uvicorn.
    """
    settings = load_settings()
    if sessions is None:
        sessions = SessionRegistry(settings.session_ttl_seconds)
    if trace_router is None:
        trace_router = TraceRouter(presence=sessions)

    app = FastAPI(
        title="Trace Replay",
        description="Serve recorded browser traces and replay their DOM snapshots.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.trace_router = trace_router
    app.state.sessions = sessions

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Global Exception Handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler so unhandled exceptions return structured JSON."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": str(exc),
                "path": request.url.path,
            },
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        """Map unknown traces, frames and snapshots to HTTP 404."""
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "detail": str(exc)},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Map ValueErrors (malformed or unsupported traces) to HTTP 400."""
        return JSONResponse(
            status_code=400,
            content={"error": "Bad Request", "detail": str(exc)},
        )

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness probe."""
        return {
            "status": "ok",
            "version": __version__,
            "environment": settings.environment,
        }

    # Registered last: the viewer router ends with a catch-all path.
    app.include_router(viewer.router)

    return app


__all__ = ["create_app", "lifespan"]
