"""create pipeline table

Revision ID: 3b9e51c0d2a4
Revises:
Create Date: 2026-10-19 09:12:40.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3b9e51c0d2a4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the pipeline registry table."""
    op.create_table(
        "pipeline",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("template", sa.LargeBinary(), nullable=False),
        sa.Column("template_content_type", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_pipeline_created_at_id", "pipeline", ["created_at", "id"])


def downgrade() -> None:
    """Drop the pipeline registry table."""
    op.drop_index("ix_pipeline_created_at_id", table_name="pipeline")
    op.drop_table("pipeline")
