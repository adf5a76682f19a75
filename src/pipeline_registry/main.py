# src/pipeline_registry/main.py
"""Main entry point for the Pipeline Registry application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from pipeline_registry.api.v1 import pipelines_router
from pipeline_registry.core.settings import settings
from pipeline_registry.services.template_fetcher import get_template_fetcher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Pipeline Registry API",
    description="Register, list and remove pipeline templates",
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
app.include_router(pipelines_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    logger.info("%s %s starting", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_template_fetcher().close()


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
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pipeline_registry.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
