"""FileVault API - Main Application Module.

This module initializes the FastAPI application with configuration,
middleware, routing, and lifecycle management for the file sharing service.
"""

import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from filevault.core.config import ConfigValidator, SweepModeEnum, get_config_summary, settings
from filevault.core.dependencies import get_blob_store
from filevault.core.logging import configure_logging
from filevault.database import AsyncSessionLocal, engine
from filevault.services.expiry_sweeper import ExpirySweeper
from models import Base

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle events."""
    # Startup
    configure_logging()
    ConfigValidator.validate_required_settings()
    logger.info("Starting %s (%s)", settings.app_name, settings.environment.value)
    logger.debug("Configuration: %s", get_config_summary())

    # Development mode: Auto-create tables if they don't exist
    # Production: Use Alembic migrations (alembic upgrade head)
    if settings.is_development or settings.is_testing:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")
    else:
        logger.info("Production mode: use 'alembic upgrade head' to manage the database schema")

    sweeper = None
    if settings.expiry_sweep_mode == SweepModeEnum.in_process:
        sweeper = ExpirySweeper(AsyncSessionLocal, get_blob_store())
        sweeper.start()
    app.state.expiry_sweeper = sweeper

    yield

    # Shutdown
    logger.info("Shutting down %s", settings.app_name)
    if sweeper is not None:
        await sweeper.stop()
    await engine.dispose()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Password-protected, expiring file sharing",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Add middleware
    setup_middleware(app)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Content-Range", "Accept-Ranges", "X-Request-ID"],
    )

    # Request ID and access log middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            extra={"request_id": request_id},
        )
        return response


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "status": "error",
                "message": message,
                "error": message,
                "error_code": error_code,
                "details": details,
                "timestamp": _timestamp(),
                "request_id": getattr(request.state, "request_id", None),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Convert errors to JSON-serializable format
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": error.get("loc", []),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            errors.append(error_dict)

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "status": "error",
                "message": "Validation error",
                "error": "Validation error",
                "error_code": "VALIDATION_ERROR",
                "details": errors,
                "timestamp": _timestamp(),
                "request_id": getattr(request.state, "request_id", None),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "status": "error",
                "message": "Internal server error",
                "error": "Internal server error",
                "error_code": "INTERNAL_ERROR",
                "details": None,
                "timestamp": _timestamp(),
                "request_id": getattr(request.state, "request_id", None),
            },
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    # Import routers
    from filevault.domains.admin.controller import router as admin_router
    from filevault.domains.files.controller import router as files_router

    @app.get("/health")
    async def health_check():
        """Health check endpoint with a database probe."""
        db_status = "healthy"
        try:
            async with AsyncSessionLocal() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Health check database probe failed: %s", e)
            db_status = "unhealthy"

        body = {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": settings.version,
            "environment": settings.environment.value,
            "timestamp": _timestamp(),
            "services": {
                "database": db_status,
                "storage": settings.storage_backend.value,
                "expiry_sweep": settings.expiry_sweep_mode.value,
            },
        }
        return JSONResponse(status_code=200 if db_status == "healthy" else 503, content=body)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Password-protected, expiring file sharing",
            "features": ConfigValidator.get_feature_status(),
            "docs_url": "/docs" if settings.is_development else None,
        }

    # Include domain routers
    app.include_router(files_router)
    app.include_router(admin_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "filevault.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
