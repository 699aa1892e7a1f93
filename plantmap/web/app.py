"""FastAPI application for the PlantMap tracker cycle service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.middleware.base import BaseHTTPMiddleware

from plantmap import __version__
from plantmap.core.logging import configure_logging
from plantmap.db.connection import close_db, init_db
from plantmap.exceptions import (
    DuplicatePending,
    InvalidSelection,
    NotFound,
    PlantMapError,
    PreconditionFailed,
)
from plantmap.web.routes import cycles, health, plant, status_requests

# Initialize structured logging
configure_logging()
logger = structlog.get_logger()

ERROR_STATUS: dict[type[PlantMapError], int] = {
    InvalidSelection: 400,
    NotFound: 404,
    DuplicatePending: 409,
    PreconditionFailed: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("plantmap_started", version=__version__)
    yield
    await close_db()


app = FastAPI(
    title="PlantMap",
    description="Tracker maintenance cycles and status approval workflow",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Request Logging Middleware
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        structlog.contextvars.clear_contextvars()

        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            logger.info(
                "request_completed",
                status_code=response.status_code,
            )
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            logger.error("request_failed", error=str(exc))
            raise


app.add_middleware(RequestLoggingMiddleware)

# Prometheus Metrics
Instrumentator().instrument(app).expose(app)


# Exception Handlers
@app.exception_handler(PlantMapError)
async def plantmap_error_handler(request: Request, exc: PlantMapError):
    """Translate domain errors into {"error": code, "detail": message}."""
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500
    )
    content = {"error": exc.code, "detail": exc.message}
    if isinstance(exc, DuplicatePending):
        content["existing_request_id"] = str(exc.existing_request_id)
    if isinstance(exc, InvalidSelection) and exc.tracker_ids:
        content["tracker_ids"] = exc.tracker_ids

    logger.info("domain_error", error=exc.code, status_code=status_code, detail=exc.message)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "detail": exc.detail},
        headers=exc.headers,
    )


# Include Routers
app.include_router(health.router)
app.include_router(plant.router)
app.include_router(cycles.router)
app.include_router(status_requests.router)
