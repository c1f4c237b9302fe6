"""add pipeline job stall count and unique fingerprint indexes

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 15:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "pipeline_jobs",
        sa.Column("stalled_count", sa.Integer(), server_default="0", nullable=False),
    )

    # Keep the most recently seen row per source/workflow before the unique
    # indexes go in.
    op.execute(
        """
        DELETE FROM schema_fingerprints AS older
        USING schema_fingerprints AS newer
        WHERE older.source_table = newer.source_table
          AND older.workflow_id IS NOT DISTINCT FROM newer.workflow_id
          AND (older.last_seen_at, older.id) < (newer.last_seen_at, newer.id)
        """
    )
    op.drop_index("ix_schema_fingerprints_source_workflow", table_name="schema_fingerprints")
    op.create_index(
        "uq_schema_fingerprints_source_workflow",
        "schema_fingerprints",
        ["source_table", "workflow_id"],
        unique=True,
        postgresql_where=sa.text("workflow_id IS NOT NULL"),
    )
    op.create_index(
        "uq_schema_fingerprints_source_null_workflow",
        "schema_fingerprints",
        ["source_table"],
        unique=True,
        postgresql_where=sa.text("workflow_id IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_schema_fingerprints_source_null_workflow", table_name="schema_fingerprints")
    op.drop_index("uq_schema_fingerprints_source_workflow", table_name="schema_fingerprints")
    op.create_index(
        "ix_schema_fingerprints_source_workflow",
        "schema_fingerprints",
        ["source_table", "workflow_id"],
        unique=False,
    )
    op.drop_column("pipeline_jobs", "stalled_count")
