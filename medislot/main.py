"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medislot import __version__
from medislot.api.v1.router import api_router
from medislot.core.config import settings
from medislot.core.logging import setup_logging
from medislot.db.init_db import init_db
from medislot.db.session import engine
from medislot.middleware.request_id import RequestIdMiddleware
from medislot.services.notifications import build_notifier

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(f"Starting MediSlot API (env={settings.env})")

    if settings.init_db_on_startup and not settings.is_prod:
        logger.info("Initializing database...")
        await init_db()

    app.state.notifier = build_notifier(settings)

    yield

    logger.info("Shutting down MediSlot API")
    await app.state.notifier.close()
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="MediSlot API",
    description="Appointment slot availability and booking",
    version=__version__,
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
    openapi_url="/openapi.json" if settings.is_dev else None,
    lifespan=lifespan,
)

# Tag every request and its log lines with an id
app.add_middleware(RequestIdMiddleware)

# CORS middleware (configure appropriately for production)
if settings.is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    # Don't expose internal errors in production
    if settings.is_prod:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


# Include API router
app.include_router(api_router, prefix="/api/v1")


# Root endpoint
@app.get("/", include_in_schema=False)
async def root() -> dict:
    """Root endpoint with service information."""
    return {
        "service": "MediSlot API",
        "version": __version__,
        "docs": "/docs" if settings.is_dev else "Disabled in production",
    }
