"""
Handler for the ``schema-fingerprint`` queue.
"""

from __future__ import annotations

from typing import Any

from db.repositories.types import FingerprintObservation
from leadflow.services.fingerprint_service import FingerprintService
from leadflow.workers.payloads import FingerprintJobPayload


class FingerprintWorker:
    def __init__(self, service: FingerprintService | None = None) -> None:
        self._service = service or FingerprintService()

    def __call__(self, payload: dict[str, Any]) -> FingerprintObservation | None:
        job = FingerprintJobPayload.parse(payload)
        return self._service.record_samples(
            source_table=job.source_table,
            workflow_id=job.workflow_id,
            sample_ids=job.sample_ids,
        )
