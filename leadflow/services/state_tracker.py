"""
leadflow/services/state_tracker.py

Owns the RawRecord lifecycle:

    pending -> processing -> processed
                          -> failed -> (manual retry) -> pending

Each transition runs in its own unit of work unless the caller passes one,
in which case the transition joins the caller's transaction.
"""

from __future__ import annotations

import logging
import uuid

from db.models.raw_record import ProcessingStatus, RawRecord
from db.unit_of_work import PipelineUnitOfWork, SqlAlchemyUnitOfWork, UnitOfWorkFactory
from leadflow.errors import RecordNotFoundError
from leadflow.logging_utils import log_event

logger = logging.getLogger(__name__)

RUNNABLE_STATUSES = frozenset({ProcessingStatus.PENDING, ProcessingStatus.FAILED})


class ProcessingStateTracker:
    def __init__(self, uow_factory: UnitOfWorkFactory | None = None) -> None:
        self._uow_factory = uow_factory or SqlAlchemyUnitOfWork

    def begin_processing(
        self,
        *,
        tenant_id: uuid.UUID,
        record_id: uuid.UUID,
    ) -> RawRecord | None:
        """
        Move a tenant's ``pending`` or ``failed`` record to ``processing``.

        Returns None and writes nothing when the record is in any other
        state. The state check and the transition run under one row lock,
        so of two concurrent deliveries for the same record only one gets
        the record back.
        """

        with self._uow_factory() as uow:
            record = uow.raw_records.get_for_tenant(
                tenant_id=tenant_id,
                record_id=record_id,
                for_update=True,
            )
            _require_record(record_id, record)
            if record.processing_status not in RUNNABLE_STATUSES:
                log_event(
                    logger,
                    logging.INFO,
                    "record_not_runnable",
                    record_id=str(record_id),
                    processing_status=record.processing_status,
                )
                return None
            uow.raw_records.mark_processing(record_id=record_id)
        log_event(logger, logging.DEBUG, "record_processing", record_id=str(record_id))
        return record

    def mark_processed(
        self,
        record_id: uuid.UUID,
        *,
        uow: PipelineUnitOfWork | None = None,
    ) -> RawRecord:
        """
        Enter ``processed``: stamps processed_at and clears any earlier error.
        """

        record = self._transition(
            record_id,
            uow,
            lambda active: active.raw_records.mark_processed(record_id=record_id),
        )
        log_event(logger, logging.DEBUG, "record_processed", record_id=str(record_id))
        return record

    def mark_failed(
        self,
        record_id: uuid.UUID,
        *,
        error_message: str,
        error_kind: str | None = None,
        uow: PipelineUnitOfWork | None = None,
    ) -> RawRecord:
        """
        Enter ``failed`` with the causing error. processed_at is left as is.
        """

        record = self._transition(
            record_id,
            uow,
            lambda active: active.raw_records.mark_failed(
                record_id=record_id,
                error_message=error_message,
                error_kind=error_kind,
            ),
        )
        log_event(
            logger,
            logging.WARNING,
            "record_failed",
            record_id=str(record_id),
            error_kind=error_kind,
            error_message=error_message,
        )
        return record

    def reset_for_retry(
        self,
        *,
        tenant_id: uuid.UUID,
        record_id: uuid.UUID,
        uow: PipelineUnitOfWork | None = None,
    ) -> RawRecord:
        """
        Return a tenant's record to ``pending`` and clear its error.

        Any current state is accepted. A missing record, or one owned by
        another tenant, raises RecordNotFoundError and nothing is written.
        """

        def _reset(active: PipelineUnitOfWork) -> RawRecord | None:
            record = active.raw_records.get_for_tenant(tenant_id=tenant_id, record_id=record_id)
            if record is None:
                return None
            return active.raw_records.reset_to_pending(record_id=record_id)

        return self._transition(record_id, uow, _reset)

    def _transition(self, record_id, uow, apply) -> RawRecord:
        if uow is not None:
            return _require_record(record_id, apply(uow))
        with self._uow_factory() as own_uow:
            return _require_record(record_id, apply(own_uow))


def _require_record(record_id: uuid.UUID, record: RawRecord | None) -> RawRecord:
    if record is None:
        raise RecordNotFoundError(
            f"Raw record not found: {record_id}",
            context={"record_id": str(record_id)},
        )
    return record
