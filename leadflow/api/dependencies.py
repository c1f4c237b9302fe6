"""
leadflow/api/dependencies.py

Shared FastAPI dependencies for the operational endpoints.
"""

from __future__ import annotations

from functools import lru_cache
from uuid import UUID

from fastapi import Header, HTTPException, status

from leadflow.services.pipeline_service import PipelineService

TENANT_HEADER = "X-Tenant-Id"


def get_tenant_id(x_tenant_id: str | None = Header(default=None, alias=TENANT_HEADER)) -> UUID:
    """
    Read the caller's tenant from the X-Tenant-Id header.
    """

    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{TENANT_HEADER} header is required.",
        )
    try:
        return UUID(x_tenant_id.strip())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{TENANT_HEADER} must be a UUID.",
        ) from exc


@lru_cache(maxsize=1)
def get_pipeline_service() -> PipelineService:
    from leadflow.queue.postgres import PostgresJobQueue

    return PipelineService(queue=PostgresJobQueue())
