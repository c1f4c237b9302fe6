"""
Schemas for pipeline status, listing and retry endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class PipelineStatusResponse(BaseModel):
    pending: int
    processing: int
    processed: int
    failed: int
    queue_depth: int


class RecordSummaryResponse(BaseModel):
    id: UUID
    entity_type: str
    workflow_id: str | None = None
    processing_status: str
    error_message: str | None = None
    error_kind: str | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None


class RecordListResponse(BaseModel):
    records: list[RecordSummaryResponse] = Field(default_factory=list)


class RetryAcceptedResponse(BaseModel):
    record_id: UUID
    job_id: UUID
    status: str
