"""
leadflow/services/pipeline_service.py

Operational facade over the pipeline: ingestion helpers, per-tenant status,
recent-record listing and manual retry.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from db.models.raw_record import ProcessingStatus, RawRecord
from db.repositories.types import RawRecordCreate
from db.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWorkFactory
from leadflow.config import QueueName
from leadflow.logging_utils import log_event
from leadflow.queue.base import JobQueue
from leadflow.services.state_tracker import ProcessingStateTracker
from leadflow.workers.payloads import TransformJobPayload

logger = logging.getLogger(__name__)

DEFAULT_RECORD_LIMIT = 50
MAX_RECORD_LIMIT = 500


@dataclass(frozen=True)
class PipelineStatus:
    pending: int
    processing: int
    processed: int
    failed: int
    queue_depth: int


@dataclass(frozen=True)
class RecordSummary:
    id: uuid.UUID
    entity_type: str
    workflow_id: str | None
    processing_status: str
    error_message: str | None
    error_kind: str | None
    created_at: datetime | None
    processed_at: datetime | None

    @classmethod
    def from_record(cls, record: RawRecord) -> RecordSummary:
        return cls(
            id=record.id,
            entity_type=record.entity_type,
            workflow_id=record.workflow_id,
            processing_status=record.processing_status,
            error_message=record.error_message,
            error_kind=record.error_kind,
            created_at=record.created_at,
            processed_at=record.processed_at,
        )


class PipelineService:
    def __init__(
        self,
        *,
        queue: JobQueue,
        uow_factory: UnitOfWorkFactory | None = None,
        state_tracker: ProcessingStateTracker | None = None,
    ) -> None:
        self._queue = queue
        self._uow_factory = uow_factory or SqlAlchemyUnitOfWork
        self._state_tracker = state_tracker or ProcessingStateTracker(self._uow_factory)

    # ------------------------------------------------------------------
    # Ingestion boundary
    # ------------------------------------------------------------------

    def ingest(
        self,
        *,
        tenant_id: uuid.UUID,
        entity_type: str,
        raw_data: dict[str, Any],
        workflow_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> uuid.UUID:
        """
        Store one raw payload and enqueue its transform job.
        """

        return self.ingest_batch(
            tenant_id=tenant_id,
            entity_type=entity_type,
            items=[raw_data],
            workflow_id=workflow_id,
            metadata=metadata,
        )[0]

    def ingest_batch(
        self,
        *,
        tenant_id: uuid.UUID,
        entity_type: str,
        items: Sequence[dict[str, Any]],
        workflow_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> list[uuid.UUID]:
        """
        Store several raw payloads in one transaction, then enqueue one
        transform job per stored record.
        """

        creates = [
            RawRecordCreate(
                tenant_id=tenant_id,
                entity_type=entity_type,
                raw_data=dict(item),
                workflow_id=workflow_id,
                metadata=dict(metadata or {}),
            )
            for item in items
        ]
        if not creates:
            return []

        with self._uow_factory() as uow:
            records = uow.raw_records.create_many(creates)
            record_ids = [record.id for record in records]

        for record_id in record_ids:
            self._enqueue_transform(
                tenant_id=tenant_id,
                record_id=record_id,
                entity_type=entity_type,
                workflow_id=workflow_id,
            )

        log_event(
            logger,
            logging.INFO,
            "records_ingested",
            tenant_id=str(tenant_id),
            entity_type=entity_type,
            workflow_id=workflow_id,
            count=len(record_ids),
        )
        return record_ids

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_status(self, *, tenant_id: uuid.UUID) -> PipelineStatus:
        with self._uow_factory() as uow:
            counts = uow.raw_records.count_by_status(tenant_id=tenant_id)
        queue_counts = self._queue.counts(QueueName.TRANSFORM)
        return PipelineStatus(
            pending=counts.get(ProcessingStatus.PENDING, 0),
            processing=counts.get(ProcessingStatus.PROCESSING, 0),
            processed=counts.get(ProcessingStatus.PROCESSED, 0),
            failed=counts.get(ProcessingStatus.FAILED, 0),
            queue_depth=queue_counts.depth,
        )

    def list_recent_records(
        self,
        *,
        tenant_id: uuid.UUID,
        limit: int = DEFAULT_RECORD_LIMIT,
    ) -> list[RecordSummary]:
        bounded = min(max(1, limit), MAX_RECORD_LIMIT)
        with self._uow_factory() as uow:
            records = uow.raw_records.list_recent(tenant_id=tenant_id, limit=bounded)
            return [RecordSummary.from_record(record) for record in records]

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------

    def retry(self, *, tenant_id: uuid.UUID, record_id: uuid.UUID) -> uuid.UUID:
        """
        Reset a record to pending and enqueue a fresh transform job.

        Raises RecordNotFoundError without side effects when the record does
        not exist or belongs to another tenant. Returns the new job id.
        """

        record = self._state_tracker.reset_for_retry(tenant_id=tenant_id, record_id=record_id)
        job_id = self._enqueue_transform(
            tenant_id=tenant_id,
            record_id=record.id,
            entity_type=record.entity_type,
            workflow_id=record.workflow_id,
        )
        log_event(
            logger,
            logging.INFO,
            "record_retry_enqueued",
            tenant_id=str(tenant_id),
            record_id=str(record_id),
            job_id=str(job_id),
        )
        return job_id

    def _enqueue_transform(
        self,
        *,
        tenant_id: uuid.UUID,
        record_id: uuid.UUID,
        entity_type: str,
        workflow_id: str | None,
    ) -> uuid.UUID:
        payload = TransformJobPayload(
            record_id=record_id,
            tenant_id=tenant_id,
            entity_type=entity_type,
            workflow_id=workflow_id,
        )
        return self._queue.enqueue(QueueName.TRANSFORM, payload.to_job_payload())
