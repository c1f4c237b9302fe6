from __future__ import annotations

import uuid

import pytest

from fakes import FakeUnitOfWorkFactory, InMemoryStore
from leadflow.errors import InvalidJobPayloadError
from leadflow.services.fingerprint_service import (
    FingerprintService,
    extract_fingerprint,
    json_type_name,
)
from leadflow.workers.fingerprint_worker import FingerprintWorker


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "null"),
        (True, "boolean"),
        (3, "number"),
        (2.5, "number"),
        ("x", "string"),
        ({"a": 1}, "object"),
        ([1], "array"),
    ],
)
def test_json_type_name(value, expected) -> None:
    assert json_type_name(value) == expected


def test_extract_fingerprint_unions_keys_and_types() -> None:
    fingerprint = extract_fingerprint(
        [
            {"email": "a@x.com", "age": 30},
            {"email": None, "tags": ["a"]},
        ]
    )

    assert fingerprint == {
        "keys": ["age", "email", "tags"],
        "types": {"age": "number", "email": "null|string", "tags": "array"},
    }


class TestFingerprintService:
    @pytest.fixture()
    def service(self, uow_factory: FakeUnitOfWorkFactory) -> FingerprintService:
        return FingerprintService(uow_factory)

    def test_records_and_accumulates_samples(
        self, store: InMemoryStore, service: FingerprintService, tenant_id: uuid.UUID
    ) -> None:
        first = store.add_record(tenant_id=tenant_id, raw_data={"email": "a@x.com"})
        second = store.add_record(tenant_id=tenant_id, raw_data={"email": "b@x.com", "phone": "1"})

        service.record_samples(source_table="raw_records", workflow_id="wf", sample_ids=[first.id])
        observation = service.record_samples(
            source_table="raw_records",
            workflow_id="wf",
            sample_ids=[second.id, uuid.uuid4()],
        )

        assert observation is not None
        assert observation.sample_count == 1
        (stored,) = store.fingerprints
        assert stored.sample_count == 2
        assert stored.fingerprint["keys"] == ["email", "phone"]
        assert stored.last_seen_at >= stored.first_seen_at

    def test_workflows_are_fingerprinted_separately(
        self, store: InMemoryStore, service: FingerprintService, tenant_id: uuid.UUID
    ) -> None:
        record = store.add_record(tenant_id=tenant_id, raw_data={"email": "a@x.com"})

        service.record_samples(source_table="raw_records", workflow_id="wf-a", sample_ids=[record.id])
        service.record_samples(source_table="raw_records", workflow_id=None, sample_ids=[record.id])

        assert sorted(str(f.workflow_id) for f in store.fingerprints) == ["None", "wf-a"]

    def test_no_resolvable_samples_writes_nothing(
        self, store: InMemoryStore, service: FingerprintService
    ) -> None:
        result = service.record_samples(
            source_table="raw_records",
            workflow_id=None,
            sample_ids=[uuid.uuid4()],
        )

        assert result is None
        assert store.fingerprints == []

    def test_unknown_source_table_is_rejected(self, service: FingerprintService) -> None:
        with pytest.raises(InvalidJobPayloadError):
            service.record_samples(source_table="leads", workflow_id=None, sample_ids=[])


def test_worker_parses_camel_case_payload(
    store: InMemoryStore, uow_factory: FakeUnitOfWorkFactory, tenant_id: uuid.UUID
) -> None:
    record = store.add_record(tenant_id=tenant_id, raw_data={"email": "a@x.com"})
    worker = FingerprintWorker(FingerprintService(uow_factory))

    observation = worker(
        {"sourceTable": "raw_records", "workflowId": "wf", "sampleIds": [str(record.id)]}
    )

    assert observation is not None
    assert observation.workflow_id == "wf"
    assert len(store.fingerprints) == 1
