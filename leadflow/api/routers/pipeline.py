"""
Pipeline status, record listing and retry endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from leadflow.api.dependencies import get_pipeline_service, get_tenant_id
from leadflow.errors import RecordNotFoundError
from leadflow.schemas.pipeline import (
    PipelineStatusResponse,
    RecordListResponse,
    RecordSummaryResponse,
    RetryAcceptedResponse,
)
from leadflow.services.pipeline_service import PipelineService, RecordSummary

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.get("/status", response_model=PipelineStatusResponse)
def get_pipeline_status(
    tenant_id: UUID = Depends(get_tenant_id),
    service: PipelineService = Depends(get_pipeline_service),
) -> PipelineStatusResponse:
    pipeline_status = service.get_status(tenant_id=tenant_id)
    return PipelineStatusResponse(
        pending=pipeline_status.pending,
        processing=pipeline_status.processing,
        processed=pipeline_status.processed,
        failed=pipeline_status.failed,
        queue_depth=pipeline_status.queue_depth,
    )


@router.get("/records", response_model=RecordListResponse)
def list_pipeline_records(
    limit: int = Query(default=50, ge=1, le=500, description="Max records returned"),
    tenant_id: UUID = Depends(get_tenant_id),
    service: PipelineService = Depends(get_pipeline_service),
) -> RecordListResponse:
    records = service.list_recent_records(tenant_id=tenant_id, limit=limit)
    return RecordListResponse(records=[_to_record_response(record) for record in records])


@router.post(
    "/retry/{record_id}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RetryAcceptedResponse,
)
def retry_pipeline_record(
    record_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    service: PipelineService = Depends(get_pipeline_service),
) -> RetryAcceptedResponse:
    try:
        job_id = service.retry(tenant_id=tenant_id, record_id=record_id)
    except RecordNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"kind": exc.kind, "message": exc.message},
        ) from exc
    return RetryAcceptedResponse(record_id=record_id, job_id=job_id, status="pending")


def _to_record_response(record: RecordSummary) -> RecordSummaryResponse:
    return RecordSummaryResponse(
        id=record.id,
        entity_type=record.entity_type,
        workflow_id=record.workflow_id,
        processing_status=record.processing_status,
        error_message=record.error_message,
        error_kind=record.error_kind,
        created_at=record.created_at,
        processed_at=record.processed_at,
    )
