"""
leadflow/workers/payloads.py

Job payload schemas, one per queue. Payloads are stored as snake_case JSON;
camelCase keys from older producers are accepted on read.
"""

from __future__ import annotations

import uuid
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from leadflow.errors import InvalidJobPayloadError

PayloadT = TypeVar("PayloadT", bound="JobPayload")


class JobPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def parse(cls: type[PayloadT], payload: Any) -> PayloadT:
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise InvalidJobPayloadError(
                f"Invalid {cls.__name__} payload: {exc.error_count()} error(s)",
                context={
                    "errors": exc.errors(
                        include_url=False, include_context=False, include_input=False
                    )
                },
            ) from exc

    def to_job_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class TransformJobPayload(JobPayload):
    record_id: uuid.UUID
    tenant_id: uuid.UUID
    entity_type: str = Field(min_length=1)
    workflow_id: str | None = None


class FingerprintJobPayload(JobPayload):
    source_table: str = Field(min_length=1)
    workflow_id: str | None = None
    sample_ids: list[uuid.UUID] = Field(default_factory=list)


class CampaignJobPayload(JobPayload):
    campaign_id: uuid.UUID
    tenant_id: uuid.UUID
    lead_ids: list[uuid.UUID] = Field(default_factory=list)
    message_id: uuid.UUID | None = None
