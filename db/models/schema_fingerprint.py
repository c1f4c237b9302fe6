"""
db/models/schema_fingerprint.py

Observed key/type shape of raw payloads per source table and workflow.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, UUIDPrimaryKeyMixin

FINGERPRINT_WORKFLOW_UNIQUE_INDEX = "uq_schema_fingerprints_source_workflow"
FINGERPRINT_NULL_WORKFLOW_UNIQUE_INDEX = "uq_schema_fingerprints_source_null_workflow"


class SchemaFingerprint(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "schema_fingerprints"

    source_table: Mapped[str] = mapped_column(String(120), nullable=False)
    workflow_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fingerprint: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment='{"keys": [...], "types": {key: type}}',
    )
    sample_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # NULL workflow ids never collide in a plain unique index, so each case
    # gets its own partial one.
    __table_args__ = (
        Index(
            FINGERPRINT_WORKFLOW_UNIQUE_INDEX,
            "source_table",
            "workflow_id",
            unique=True,
            postgresql_where=text("workflow_id IS NOT NULL"),
        ),
        Index(
            FINGERPRINT_NULL_WORKFLOW_UNIQUE_INDEX,
            "source_table",
            unique=True,
            postgresql_where=text("workflow_id IS NULL"),
        ),
    )
