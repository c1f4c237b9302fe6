"""create pipeline tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "raw_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("workflow_id", sa.String(length=255), nullable=True),
        sa.Column("raw_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("processing_status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_kind", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_raw_records_tenant_status",
        "raw_records",
        ["tenant_id", "processing_status"],
        unique=False,
    )
    op.create_index(
        "ix_raw_records_tenant_created_at",
        "raw_records",
        ["tenant_id", "created_at"],
        unique=False,
    )
    op.create_index("ix_raw_records_workflow_id", "raw_records", ["workflow_id"], unique=False)

    op.create_table(
        "leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("job_title", sa.String(length=255), nullable=True),
        sa.Column("linkedin_url", sa.String(length=1024), nullable=True),
        sa.Column("status", sa.String(length=32), server_default="new", nullable=False),
        sa.Column("source", sa.String(length=255), nullable=True),
        sa.Column("source_workflow", sa.String(length=255), nullable=True),
        sa.Column(
            "enrichment_data",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.Text()),
            server_default=sa.text("'{}'::text[]"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_leads_tenant_id_email",
        "leads",
        ["tenant_id", "email"],
        unique=True,
        postgresql_where=sa.text("email IS NOT NULL"),
    )
    op.create_index("ix_leads_tenant_status", "leads", ["tenant_id", "status"], unique=False)

    op.create_table(
        "pipeline_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("queue_name", sa.String(length=64), nullable=False),
        sa.Column("state", sa.String(length=16), server_default="waiting", nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("attempts_made", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max_attempts", sa.Integer(), server_default="1", nullable=False),
        sa.Column("available_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_pipeline_jobs_claim",
        "pipeline_jobs",
        ["queue_name", "state", "available_at"],
        unique=False,
    )
    op.create_index(
        "ix_pipeline_jobs_queue_state_completed",
        "pipeline_jobs",
        ["queue_name", "state", "completed_at"],
        unique=False,
    )

    op.create_table(
        "schema_fingerprints",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_table", sa.String(length=120), nullable=False),
        sa.Column("workflow_id", sa.String(length=255), nullable=True),
        sa.Column("fingerprint", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("sample_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_schema_fingerprints_source_workflow",
        "schema_fingerprints",
        ["source_table", "workflow_id"],
        unique=False,
    )

    op.create_table(
        "transformer_configs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("source_table", sa.String(length=120), server_default="raw_records", nullable=False),
        sa.Column("target_table", sa.String(length=120), nullable=False),
        sa.Column("version", sa.String(length=32), nullable=False),
        sa.Column("field_mappings", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("dedup_key", sa.String(length=64), nullable=True),
        sa.Column("on_conflict", sa.String(length=16), server_default="merge", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entity_type", "version", name="uq_transformer_configs_entity_version"),
    )
    op.create_index(
        "ix_transformer_configs_entity_active",
        "transformer_configs",
        ["entity_type", "is_active"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_transformer_configs_entity_active", table_name="transformer_configs")
    op.drop_table("transformer_configs")
    op.drop_index("ix_schema_fingerprints_source_workflow", table_name="schema_fingerprints")
    op.drop_table("schema_fingerprints")
    op.drop_index("ix_pipeline_jobs_queue_state_completed", table_name="pipeline_jobs")
    op.drop_index("ix_pipeline_jobs_claim", table_name="pipeline_jobs")
    op.drop_table("pipeline_jobs")
    op.drop_index("ix_leads_tenant_status", table_name="leads")
    op.drop_index("uq_leads_tenant_id_email", table_name="leads")
    op.drop_table("leads")
    op.drop_index("ix_raw_records_workflow_id", table_name="raw_records")
    op.drop_index("ix_raw_records_tenant_created_at", table_name="raw_records")
    op.drop_index("ix_raw_records_tenant_status", table_name="raw_records")
    op.drop_table("raw_records")
