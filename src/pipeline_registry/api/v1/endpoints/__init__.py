# src/pipeline_registry/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .pipelines import router as pipelines_router

__all__ = ["pipelines_router"]
