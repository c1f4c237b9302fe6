"""
db/models/raw_record.py

One ingested, not-yet-structured payload and its processing lifecycle.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ProcessingStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"

    ALL: tuple[str, ...] = (PENDING, PROCESSING, PROCESSED, FAILED)


class RawRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "raw_records"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Owning tenant (company) id",
    )
    entity_type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Discriminator selecting the transformer, e.g. lead",
    )
    workflow_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Free-text provenance tag supplied by the sender",
    )
    raw_data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )
    processing_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ProcessingStatus.PENDING,
        server_default=ProcessingStatus.PENDING,
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_kind: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Machine-readable failure category",
    )

    __table_args__ = (
        Index("ix_raw_records_tenant_status", "tenant_id", "processing_status"),
        Index("ix_raw_records_tenant_created_at", "tenant_id", "created_at"),
        Index("ix_raw_records_workflow_id", "workflow_id"),
    )
