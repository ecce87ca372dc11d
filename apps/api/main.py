from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.api.routes import attendance, health, jobs
from packages.core.config import settings
from packages.core.dispatcher import Dispatcher
from packages.core.errors import InvalidRequest
from packages.core.forwarder import Forwarder
from packages.core.job_store import JobStore
from packages.core.logging import get_logger, setup_logging
from packages.core.reaper import Reaper

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the job store and its background workers for the process lifetime."""

    store = JobStore()
    forwarder = Forwarder.from_settings(store, settings)
    dispatcher = Dispatcher(store, forwarder)
    reaper = Reaper(
        store,
        retention_seconds=settings.jobs_retention_seconds,
        interval_seconds=settings.jobs_cleanup_interval_seconds,
    )

    app.state.job_store = store
    app.state.dispatcher = dispatcher
    app.state.reaper = reaper

    reaper.start()

    logger.info("service started", extra={"port": settings.app_port})
    logger.info("login webhook configured", extra={"action": "login", "webhook_url": settings.n8n_login_webhook_url})
    logger.info("logout webhook configured", extra={"action": "logout", "webhook_url": settings.n8n_logout_webhook_url})
    logger.info("health check available", extra={"port": settings.app_port, "path": "/health"})

    yield

    logger.info("shutting down gracefully", extra={"active_jobs": dispatcher.pending})
    await reaper.stop()
    await dispatcher.drain()


app = FastAPI(
    title=settings.service_name,
    version=settings.service_version,
    docs_url="/docs" if settings.app_env == "dev" else None,
    redoc_url="/redoc" if settings.app_env == "dev" else None,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(attendance.router)
app.include_router(jobs.router)


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest) -> JSONResponse:
    logger.warning(
        "request rejected",
        extra={"method": request.method, "path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Endpoint not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled error",
        extra={"method": request.method, "path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.app_env == "dev" else "Something went wrong",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "apps.api.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
        log_level=settings.app_log_level,
    )
