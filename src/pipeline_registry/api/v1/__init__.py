# src/pipeline_registry/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import pipelines_router

__all__ = ["pipelines_router"]
