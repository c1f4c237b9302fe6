"""
Repository for raw record persistence and processing-state transitions.

The caller owns the transaction; nothing here commits.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.raw_record import ProcessingStatus, RawRecord
from db.repositories.types import RawRecordCreate


class RawRecordRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, payloads: Sequence[RawRecordCreate]) -> list[RawRecord]:
        records = [_build_record(payload) for payload in payloads]
        if records:
            self._session.add_all(records)
            self._session.flush()
        return records

    def get(self, record_id: uuid.UUID) -> RawRecord | None:
        return self._session.get(RawRecord, record_id)

    def get_for_tenant(
        self,
        *,
        tenant_id: uuid.UUID,
        record_id: uuid.UUID,
        for_update: bool = False,
    ) -> RawRecord | None:
        stmt = select(RawRecord).where(
            RawRecord.id == record_id,
            RawRecord.tenant_id == tenant_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.scalars(stmt).first()

    def get_many(self, record_ids: Sequence[uuid.UUID]) -> list[RawRecord]:
        if not record_ids:
            return []
        stmt = select(RawRecord).where(RawRecord.id.in_(list(record_ids)))
        return list(self._session.scalars(stmt).all())

    def mark_processing(self, *, record_id: uuid.UUID) -> RawRecord | None:
        record = self.get(record_id)
        if record is None:
            return None
        record.processing_status = ProcessingStatus.PROCESSING
        return record

    def mark_processed(self, *, record_id: uuid.UUID) -> RawRecord | None:
        record = self.get(record_id)
        if record is None:
            return None
        record.processing_status = ProcessingStatus.PROCESSED
        record.processed_at = datetime.now(timezone.utc)
        record.error_message = None
        record.error_kind = None
        return record

    def mark_failed(
        self,
        *,
        record_id: uuid.UUID,
        error_message: str,
        error_kind: str | None = None,
    ) -> RawRecord | None:
        record = self.get(record_id)
        if record is None:
            return None
        record.processing_status = ProcessingStatus.FAILED
        record.error_message = error_message
        record.error_kind = error_kind
        return record

    def reset_to_pending(self, *, record_id: uuid.UUID) -> RawRecord | None:
        record = self.get(record_id)
        if record is None:
            return None
        record.processing_status = ProcessingStatus.PENDING
        record.error_message = None
        record.error_kind = None
        return record

    def count_by_status(self, *, tenant_id: uuid.UUID) -> dict[str, int]:
        stmt = (
            select(RawRecord.processing_status, func.count())
            .where(RawRecord.tenant_id == tenant_id)
            .group_by(RawRecord.processing_status)
        )
        counts = {status: 0 for status in ProcessingStatus.ALL}
        for status, count in self._session.execute(stmt).all():
            counts[status] = int(count)
        return counts

    def list_recent(self, *, tenant_id: uuid.UUID, limit: int = 50) -> list[RawRecord]:
        stmt: Select[tuple[RawRecord]] = (
            select(RawRecord)
            .where(RawRecord.tenant_id == tenant_id)
            .order_by(RawRecord.created_at.desc(), RawRecord.id)
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())


def _build_record(payload: RawRecordCreate) -> RawRecord:
    return RawRecord(
        id=payload.record_id,
        tenant_id=payload.tenant_id,
        entity_type=payload.entity_type,
        workflow_id=payload.workflow_id,
        raw_data=dict(payload.raw_data),
        metadata_json=dict(payload.metadata),
        processing_status=ProcessingStatus.PENDING,
    )
