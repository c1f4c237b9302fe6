"""
db/models/lead.py

Canonical, tenant-scoped lead rows produced by the transformation pipeline.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Index, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class LeadStatus:
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"

    ALL: tuple[str, ...] = (NEW, CONTACTED, QUALIFIED, CONVERTED, LOST)


# Columns the pipeline may write on an existing lead. status is owned by the
# sales workflow once a lead exists and is never touched by an upsert.
LEAD_MERGEABLE_COLUMNS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "job_title",
    "phone",
    "linkedin_url",
    "source",
    "source_workflow",
    "enrichment_data",
    "tags",
    "notes",
)

LEAD_EMAIL_UNIQUE_INDEX = "uq_leads_tenant_id_email"


class Lead(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "leads"

    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=LeadStatus.NEW,
        server_default=LeadStatus.NEW,
    )
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_workflow: Mapped[str | None] = mapped_column(String(255), nullable=True)
    enrichment_data: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(Text),
        nullable=False,
        default=list,
        server_default=text("'{}'::text[]"),
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            LEAD_EMAIL_UNIQUE_INDEX,
            "tenant_id",
            "email",
            unique=True,
            postgresql_where=text("email IS NOT NULL"),
        ),
        Index("ix_leads_tenant_status", "tenant_id", "status"),
    )
