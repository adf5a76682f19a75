"""SQLAlchemy model for registered pipelines."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_registry.db.session import Base
from pipeline_registry.db.time import utcnow


def new_pipeline_id() -> str:
    """Return a fresh opaque pipeline identifier."""
    return uuid.uuid4().hex


class Pipeline(Base):
    """A named pipeline template registered with the service.

    The template is stored exactly as it was uploaded or fetched; nothing in
    the registry interprets its contents.
    """

    __tablename__ = "pipeline"
    __table_args__ = (Index("ix_pipeline_created_at_id", "created_at", "id"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_pipeline_id)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    template: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    template_content_type: Mapped[str | None] = mapped_column(Text, nullable=True)
