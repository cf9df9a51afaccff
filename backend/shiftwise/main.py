"""FastAPI main application."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shiftwise.api.v1 import guest, migration, notifications
from shiftwise.config import settings
from shiftwise.core.database import close_db, init_db
from shiftwise.core.logging_config import setup_logging
from shiftwise.middleware.error_handler import ErrorHandlerMiddleware

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    _logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")

    await init_db()
    _logger.info(f"Guest data backend: {settings.LOCAL_STORE_BACKEND}")

    yield

    await close_db()
    _logger.info(f"{settings.APP_NAME} shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handler - Catch uncaught exceptions with id redaction
app.add_middleware(ErrorHandlerMiddleware)


def _make_json_serializable(obj):
    """Recursively convert non-JSON-serializable types to serializable ones."""
    if isinstance(obj, dict):
        return {k: _make_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_make_json_serializable(i) for i in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Exception):
        return str(obj)
    return obj


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    _logger.debug("Validation error on %s: %s", request.url, exc.errors())
    errors = _make_json_serializable(exc.errors())
    return JSONResponse(
        status_code=422,
        content={"detail": errors},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(migration.router, prefix="/api/v1/migration", tags=["Migration"])
app.include_router(guest.router, prefix="/api/v1/guest", tags=["Guest"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["Notifications"])
