# src/pipeline_registry/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .pipeline import (
    ListPipelinesResponse,
    PipelineCreate,
    PipelineResponse,
    PipelineUrl,
    TemplateResponse,
)

__all__ = [
    "ListPipelinesResponse",
    "PipelineCreate",
    "PipelineResponse",
    "PipelineUrl",
    "TemplateResponse",
]
