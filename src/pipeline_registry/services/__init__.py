# src/pipeline_registry/services/__init__.py
"""Business logic services for the Pipeline Registry application."""

from .errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PipelineError,
    TemplateFetchError,
)
from .listing import Page, PageCursor, SortSpec, list_page
from .template_fetcher import TemplateFetcher, get_template_fetcher

__all__ = [
    "AlreadyExistsError",
    "InvalidArgumentError",
    "NotFoundError",
    "PipelineError",
    "TemplateFetchError",
    "Page",
    "PageCursor",
    "SortSpec",
    "list_page",
    "TemplateFetcher",
    "get_template_fetcher",
]
