"""SQLAlchemy models for the Pipeline Registry application."""

from .pipeline import Pipeline

__all__ = ["Pipeline"]
