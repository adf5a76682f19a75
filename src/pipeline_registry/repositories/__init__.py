"""Repositories wrapping SQLAlchemy access for registry entities."""

from .pipeline_repo import PipelineRepository

__all__ = ["PipelineRepository"]
