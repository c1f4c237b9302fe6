"""
tests/test_transform_worker.py

End-to-end transform jobs: raw record in, lead out, record lifecycle kept
in step.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import OperationalError

from db.models.raw_record import ProcessingStatus
from db.repositories.lead_repository import UpsertOutcome
from fakes import FakeUnitOfWorkFactory, InMemoryStore
from leadflow.errors import (
    ErrorKind,
    InvalidJobPayloadError,
    RecordNotFoundError,
    RequiredFieldMissingError,
    StoreError,
    UnsupportedEntityTypeError,
)
from leadflow.registry.transformer_registry import TransformerRegistry
from leadflow.services.dedup_service import LeadDedupService
from leadflow.workers.transform_worker import TransformWorker


@pytest.fixture()
def worker(uow_factory: FakeUnitOfWorkFactory, registry: TransformerRegistry) -> TransformWorker:
    return TransformWorker(registry=registry, uow_factory=uow_factory)


def _payload(record, *, tenant_id=None, entity_type=None, workflow_id=None) -> dict:
    return {
        "record_id": str(record.id),
        "tenant_id": str(tenant_id or record.tenant_id),
        "entity_type": entity_type or record.entity_type,
        "workflow_id": workflow_id,
    }


class TestEndToEnd:
    def test_valid_lead_is_processed(
        self, store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
    ) -> None:
        record = store.add_record(
            tenant_id=tenant_id,
            raw_data={
                "email": "jane@x.com",
                "firstName": "  Jane ",
                "phone": "(555) 010-0199",
                "company": {"name": "Acme"},
            },
        )

        result = worker(_payload(record))

        assert result.skipped is False
        assert result.outcome == UpsertOutcome.INSERTED
        assert store.transitions(record.id) == ["pending", "processing", "processed"]
        stored = store.records[record.id]
        assert stored.processed_at is not None
        assert stored.error_message is None

        leads = store.leads_for(tenant_id)
        assert len(leads) == 1
        lead = leads[0]
        assert str(lead.id) == result.lead_id
        assert lead.email == "jane@x.com"
        assert lead.first_name == "Jane"
        assert lead.status == "new"
        assert lead.enrichment_data == {"companyName": "Acme"}

    def test_missing_email_fails_record_and_raises(
        self, store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
    ) -> None:
        record = store.add_record(tenant_id=tenant_id, raw_data={"firstName": "Jane"})

        with pytest.raises(RequiredFieldMissingError):
            worker(_payload(record))

        stored = store.records[record.id]
        assert stored.processing_status == ProcessingStatus.FAILED
        assert stored.error_message == 'Required field "$.email" is missing from raw data'
        assert stored.error_kind == ErrorKind.REQUIRED_FIELD_MISSING
        assert store.transitions(record.id) == ["pending", "processing", "failed"]
        assert store.leads == {}

    def test_unregistered_entity_type_fails_record(
        self, store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
    ) -> None:
        record = store.add_record(
            tenant_id=tenant_id,
            raw_data={"email": "jane@x.com"},
            entity_type="contact",
        )

        with pytest.raises(UnsupportedEntityTypeError):
            worker(_payload(record))

        stored = store.records[record.id]
        assert stored.processing_status == ProcessingStatus.FAILED
        assert stored.error_message == "Unsupported entity type: contact. Supported: 'lead'."
        assert stored.error_kind == ErrorKind.UNSUPPORTED_ENTITY_TYPE
        assert store.leads == {}


def test_processed_record_is_skipped(
    store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
) -> None:
    record = store.add_record(
        tenant_id=tenant_id,
        raw_data={"email": "jane@x.com"},
        status=ProcessingStatus.PROCESSED,
    )

    result = worker(_payload(record))

    assert result.skipped is True
    assert store.transitions(record.id) == ["processed"]
    assert store.leads == {}


def test_record_already_processing_is_skipped(
    store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
) -> None:
    record = store.add_record(
        tenant_id=tenant_id,
        raw_data={"email": "jane@x.com"},
        status=ProcessingStatus.PROCESSING,
    )

    result = worker(_payload(record))

    assert result.skipped is True
    assert result.lead_id is None
    assert store.transitions(record.id) == ["processing"]
    assert store.leads == {}


def test_failed_record_is_run_again(
    store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
) -> None:
    record = store.add_record(
        tenant_id=tenant_id,
        raw_data={"email": "jane@x.com"},
        status=ProcessingStatus.FAILED,
    )

    result = worker(_payload(record))

    assert result.skipped is False
    assert store.transitions(record.id) == ["failed", "processing", "processed"]


def test_existing_lead_is_merged(
    store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
) -> None:
    existing = store.add_lead(
        tenant_id=tenant_id,
        email="jane@x.com",
        first_name="Jane",
        last_name="Doe",
        status="contacted",
    )
    record = store.add_record(
        tenant_id=tenant_id,
        raw_data={"email": "jane@x.com", "jobTitle": "CTO"},
    )

    result = worker(_payload(record))

    assert result.outcome == UpsertOutcome.MERGED
    assert result.lead_id == str(existing.id)
    lead = store.leads[existing.id]
    assert lead.last_name == "Doe"
    assert lead.job_title == "CTO"
    assert lead.status == "contacted"
    assert len(store.leads) == 1


def test_workflow_id_becomes_source_workflow(
    store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
) -> None:
    record = store.add_record(tenant_id=tenant_id, raw_data={"email": "jane@x.com"})

    worker(_payload(record, workflow_id="wf-42"))

    (lead,) = store.leads_for(tenant_id)
    assert lead.source_workflow == "wf-42"


def test_tenant_mismatch_is_not_found(
    store: InMemoryStore, worker: TransformWorker, tenant_id: uuid.UUID
) -> None:
    record = store.add_record(tenant_id=tenant_id, raw_data={"email": "jane@x.com"})

    with pytest.raises(RecordNotFoundError):
        worker(_payload(record, tenant_id=uuid.uuid4()))

    assert store.transitions(record.id) == ["pending"]


def test_invalid_payload_is_rejected(worker: TransformWorker) -> None:
    with pytest.raises(InvalidJobPayloadError):
        worker({"record_id": "not-a-uuid", "entity_type": "lead"})


class _FailingDedupService(LeadDedupService):
    def upsert(self, uow, *, tenant_id, candidate, descriptor):
        raise OperationalError("INSERT INTO leads", {}, Exception("connection lost"))


def test_store_failure_rolls_back_and_marks_failed(
    store: InMemoryStore,
    uow_factory: FakeUnitOfWorkFactory,
    registry: TransformerRegistry,
    tenant_id: uuid.UUID,
) -> None:
    worker = TransformWorker(
        registry=registry,
        uow_factory=uow_factory,
        dedup_service=_FailingDedupService(),
    )
    record = store.add_record(tenant_id=tenant_id, raw_data={"email": "jane@x.com"})

    with pytest.raises(StoreError) as excinfo:
        worker(_payload(record))

    assert isinstance(excinfo.value.__cause__, OperationalError)

    stored = store.records[record.id]
    assert stored.processing_status == ProcessingStatus.FAILED
    assert stored.error_kind == ErrorKind.STORE_ERROR
    assert store.leads == {}
