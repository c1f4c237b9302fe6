"""
leadflow/workers/transform_worker.py

Handler for the ``data-transformation`` queue: one raw record in, one
upserted lead out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from db.repositories.types import LeadUpsertResult
from db.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWorkFactory
from leadflow.errors import (
    UnsupportedEntityTypeError,
    classify_error,
    error_message,
)
from leadflow.logging_utils import log_event
from leadflow.registry.transformer_registry import TransformerRegistry
from leadflow.services.dedup_service import LeadDedupService
from leadflow.services.state_tracker import ProcessingStateTracker
from leadflow.workers.payloads import TransformJobPayload

logger = logging.getLogger(__name__)

LEADS_TABLE = "leads"


@dataclass(frozen=True)
class TransformResult:
    record_id: str
    skipped: bool
    lead_id: str | None = None
    outcome: str | None = None


class TransformWorker:
    """
    Runs one transform job.

    Only ``pending`` and ``failed`` records are run. A redelivered job for a
    record that is ``processing`` or ``processed`` is a no-op. Any failure
    after the record enters ``processing`` is stored on the record as
    ``failed`` and then re-raised for the queue's own bookkeeping.
    """

    def __init__(
        self,
        *,
        registry: TransformerRegistry,
        uow_factory: UnitOfWorkFactory | None = None,
        state_tracker: ProcessingStateTracker | None = None,
        dedup_service: LeadDedupService | None = None,
    ) -> None:
        self._registry = registry
        self._uow_factory = uow_factory or SqlAlchemyUnitOfWork
        self._state_tracker = state_tracker or ProcessingStateTracker(self._uow_factory)
        self._dedup_service = dedup_service or LeadDedupService()

    def __call__(self, payload: dict[str, Any]) -> TransformResult:
        return self.handle(TransformJobPayload.parse(payload))

    def handle(self, job: TransformJobPayload) -> TransformResult:
        record = self._state_tracker.begin_processing(
            tenant_id=job.tenant_id,
            record_id=job.record_id,
        )
        if record is None:
            return TransformResult(record_id=str(job.record_id), skipped=True)

        try:
            result = self._transform_and_store(job, record.raw_data)
        except Exception as exc:
            self._state_tracker.mark_failed(
                job.record_id,
                error_message=error_message(exc),
                error_kind=classify_error(exc),
            )
            raise

        log_event(
            logger,
            logging.INFO,
            "transform_completed",
            record_id=str(job.record_id),
            tenant_id=str(job.tenant_id),
            entity_type=job.entity_type,
            lead_id=str(result.lead_id),
            outcome=result.outcome,
        )
        return TransformResult(
            record_id=str(job.record_id),
            skipped=False,
            lead_id=str(result.lead_id),
            outcome=result.outcome,
        )

    def _transform_and_store(
        self,
        job: TransformJobPayload,
        raw_data: dict[str, Any],
    ) -> LeadUpsertResult:
        transformer = self._registry.require(job.entity_type)
        if transformer.descriptor.target_table not in (None, LEADS_TABLE):
            raise UnsupportedEntityTypeError(
                f"Unsupported target table for entity type {job.entity_type}: "
                f"{transformer.descriptor.target_table}",
                context={"entity_type": job.entity_type},
            )

        candidate = transformer.transform(raw_data)
        if job.workflow_id:
            candidate["source_workflow"] = job.workflow_id

        # Lead write and the processed transition commit together.
        with self._uow_factory() as uow:
            result = self._dedup_service.upsert(
                uow,
                tenant_id=job.tenant_id,
                candidate=candidate,
                descriptor=transformer.descriptor,
            )
            self._state_tracker.mark_processed(job.record_id, uow=uow)
        return result
