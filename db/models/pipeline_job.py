"""
db/models/pipeline_job.py

Durable job rows backing the named worker queues.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PipelineJobState:
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineJob(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "pipeline_jobs"

    queue_name: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="data-transformation, schema-fingerprint, campaign-execution",
    )
    state: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=PipelineJobState.WAITING,
        server_default=PipelineJobState.WAITING,
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    attempts_made: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    max_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    stalled_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Times the job was found active with an expired lock",
    )
    available_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Earliest time the job may be claimed (retry backoff)",
    )
    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_pipeline_jobs_claim", "queue_name", "state", "available_at"),
        Index("ix_pipeline_jobs_queue_state_completed", "queue_name", "state", "completed_at"),
    )
