"""
tests/test_pipeline_router.py

HTTP contract of the /pipeline endpoints. The pipeline service is replaced
with one backed by in-memory stores.
"""

from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from db.models.raw_record import ProcessingStatus
from fakes import FakeUnitOfWorkFactory, InMemoryJobQueue, InMemoryStore
from leadflow.api.dependencies import get_pipeline_service
from leadflow.config import QueueName
from leadflow.main import create_app
from leadflow.services.pipeline_service import PipelineService


@pytest.fixture()
def client(uow_factory: FakeUnitOfWorkFactory, job_queue: InMemoryJobQueue) -> TestClient:
    app = create_app(check_database=False)
    service = PipelineService(queue=job_queue, uow_factory=uow_factory)
    app.dependency_overrides[get_pipeline_service] = lambda: service
    return TestClient(app)


def _headers(tenant_id: uuid.UUID) -> dict[str, str]:
    return {"X-Tenant-Id": str(tenant_id)}


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize("headers", [{}, {"X-Tenant-Id": "not-a-uuid"}])
def test_tenant_header_is_required(client: TestClient, headers: dict) -> None:
    response = client.get("/pipeline/status", headers=headers)
    assert response.status_code == 400


def test_status(client: TestClient, store: InMemoryStore, tenant_id: uuid.UUID) -> None:
    store.add_record(tenant_id=tenant_id, raw_data={}, status=ProcessingStatus.FAILED)
    store.add_record(tenant_id=tenant_id, raw_data={}, status=ProcessingStatus.PROCESSED)

    response = client.get("/pipeline/status", headers=_headers(tenant_id))

    assert response.status_code == 200
    assert response.json() == {
        "pending": 0,
        "processing": 0,
        "processed": 1,
        "failed": 1,
        "queue_depth": 0,
    }


def test_records_lists_tenant_records(
    client: TestClient, store: InMemoryStore, tenant_id: uuid.UUID
) -> None:
    record = store.add_record(tenant_id=tenant_id, raw_data={}, status=ProcessingStatus.FAILED)
    store.records[record.id].error_message = "boom"
    store.add_record(tenant_id=uuid.uuid4(), raw_data={})

    response = client.get("/pipeline/records", params={"limit": 10}, headers=_headers(tenant_id))

    assert response.status_code == 200
    (item,) = response.json()["records"]
    assert item["id"] == str(record.id)
    assert item["processing_status"] == "failed"
    assert item["error_message"] == "boom"


@pytest.mark.parametrize("limit", [0, 501])
def test_records_limit_is_validated(client: TestClient, tenant_id: uuid.UUID, limit: int) -> None:
    response = client.get("/pipeline/records", params={"limit": limit}, headers=_headers(tenant_id))
    assert response.status_code == 422


def test_retry_accepts_and_enqueues(
    client: TestClient,
    store: InMemoryStore,
    job_queue: InMemoryJobQueue,
    tenant_id: uuid.UUID,
) -> None:
    record = store.add_record(tenant_id=tenant_id, raw_data={}, status=ProcessingStatus.FAILED)

    response = client.post(f"/pipeline/retry/{record.id}", headers=_headers(tenant_id))

    assert response.status_code == 202
    body = response.json()
    assert body["record_id"] == str(record.id)
    assert body["status"] == "pending"
    (job,) = job_queue.jobs(QueueName.TRANSFORM)
    assert body["job_id"] == str(job.id)
    assert store.records[record.id].processing_status == ProcessingStatus.PENDING


def test_retry_unknown_record_is_404(client: TestClient, tenant_id: uuid.UUID) -> None:
    response = client.post(f"/pipeline/retry/{uuid.uuid4()}", headers=_headers(tenant_id))

    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "not_found"
