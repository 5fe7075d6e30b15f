"""Linkpage - FastAPI control plane for generated link-in-bio pages."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lp_api.api.redirect import router as redirect_router
from lp_api.api.v1.router import api_router
from lp_api.config import get_settings, validate_deployment_config
from lp_api.db.models import Base
from lp_api.db.session import get_engine
from lp_api.observability.otel import setup_telemetry

logger = structlog.get_logger()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Linkpage API", version=settings.app_version)
    tracer_provider = setup_telemetry(settings)
    try:
        validate_deployment_config(settings)
    except ValueError as e:
        logger.warning("Deployment not configured", error=str(e))

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    # Shutdown
    await engine.dispose()
    tracer_provider.shutdown()
    logger.info("Shutting down Linkpage API")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Link-in-bio page generation and deployment API",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix="/api/v1")
app.include_router(redirect_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs" if settings.debug else "disabled",
    }
