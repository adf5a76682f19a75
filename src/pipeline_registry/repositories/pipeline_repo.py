"""Data access helpers for working with pipelines."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from pipeline_registry.models.pipeline import Pipeline

__all__ = ["PipelineRepository"]


class PipelineRepository:
    """Thin wrapper around database access for pipeline entities.

    Doubles as the record source for the listing engine via :meth:`fetch_all`.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def fetch_all(self) -> list[Pipeline]:
        """Return every stored pipeline in insertion-agnostic order."""
        return list(self.session.scalars(select(Pipeline)))

    def get_by_id(self, pipeline_id: str) -> Pipeline | None:
        """Return a pipeline by identifier."""
        return self.session.get(Pipeline, pipeline_id)

    def get_by_name(self, name: str) -> Pipeline | None:
        """Return the pipeline registered under ``name``, if any."""
        return self.session.scalars(select(Pipeline).where(Pipeline.name == name)).first()

    def create(
        self,
        *,
        name: str,
        template: bytes,
        description: str | None = None,
        template_content_type: str | None = None,
    ) -> Pipeline:
        """Insert a new pipeline and return the persisted ORM instance.

        Args:
            name: Unique pipeline name; the caller checks for collisions.
            template: Raw template bytes, stored verbatim.
            description: Optional free-form description.
            template_content_type: Media type reported by the uploader.
        """
        pipeline = Pipeline(
            name=name,
            description=description,
            template=template,
            template_content_type=template_content_type,
        )
        self.session.add(pipeline)
        self.session.flush()
        return pipeline

    def delete(self, pipeline: Pipeline) -> None:
        """Remove ``pipeline`` from the session."""
        self.session.delete(pipeline)
        self.session.flush()
