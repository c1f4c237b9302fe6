"""
Typed DTOs passed between services and repositories.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class LeadUpsertPlan:
    """
    Fully resolved write for one candidate lead.

    ``insert_values`` is the row written when no match exists.
    ``update_columns`` lists the columns copied from ``insert_values`` onto a
    matched row; None means a match is left untouched.
    """

    tenant_id: uuid.UUID
    policy: str
    insert_values: dict[str, Any]
    update_columns: tuple[str, ...] | None
    merge_enrichment: bool = False
    dedup_key: str | None = None
    dedup_value: Any = None


@dataclass(frozen=True)
class LeadUpsertResult:
    lead_id: uuid.UUID
    outcome: str


@dataclass(frozen=True)
class RawRecordCreate:
    """
    One payload accepted at the ingestion boundary.
    """

    tenant_id: uuid.UUID
    entity_type: str
    raw_data: dict[str, Any]
    workflow_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    record_id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class FingerprintObservation:
    source_table: str
    workflow_id: str | None
    fingerprint: dict[str, Any]
    sample_count: int
    observed_at: datetime
