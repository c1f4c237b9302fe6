"""
leadflow/services/dedup_service.py

Decide insert vs. update for a freshly transformed lead.

Conflict policies when a lead with the same dedup key already exists for
the tenant:

  merge    every field the candidate supplies overwrites the stored value;
           fields it leaves unset keep their stored value. Enrichment data
           is merged key by key.
  skip     the stored lead is left untouched.
  replace  every writable field is overwritten, omitted ones are cleared.

``status`` is never changed on an existing lead.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from db.models.lead import LEAD_MERGEABLE_COLUMNS, LeadStatus
from db.repositories.lead_repository import UpsertOutcome
from db.repositories.types import LeadUpsertPlan, LeadUpsertResult
from db.unit_of_work import PipelineUnitOfWork
from leadflow.domain.transformer import ConflictPolicy, TransformerDescriptor
from leadflow.logging_utils import log_event

logger = logging.getLogger(__name__)

_EMPTY_DEFAULTS: dict[str, Any] = {"enrichment_data": {}, "tags": []}

__all__ = ["LeadDedupService", "UpsertOutcome", "build_lead_upsert_plan"]


def _is_supplied(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (Mapping, list, tuple, set)) and not value:
        return False
    return True


def build_lead_upsert_plan(
    *,
    tenant_id: uuid.UUID,
    candidate: Mapping[str, Any],
    descriptor: TransformerDescriptor,
) -> LeadUpsertPlan:
    """
    Turn a validated candidate into the write the repository performs.
    """

    insert_values: dict[str, Any] = {"email": candidate.get("email")}
    for column in LEAD_MERGEABLE_COLUMNS:
        value = candidate.get(column)
        if value is None and column in _EMPTY_DEFAULTS:
            value = type(_EMPTY_DEFAULTS[column])()
        if isinstance(value, Mapping):
            value = dict(value)
        elif isinstance(value, (list, tuple, set)):
            value = list(value)
        insert_values[column] = value
    insert_values["status"] = candidate.get("status") or LeadStatus.NEW

    dedup_key = descriptor.dedup_key
    dedup_value = candidate.get(dedup_key) if dedup_key else None
    if isinstance(dedup_value, str) and not dedup_value.strip():
        dedup_value = None

    policy = descriptor.on_conflict
    if policy == ConflictPolicy.SKIP:
        update_columns: tuple[str, ...] | None = None
    elif policy == ConflictPolicy.REPLACE:
        update_columns = LEAD_MERGEABLE_COLUMNS
    else:
        update_columns = tuple(
            column for column in LEAD_MERGEABLE_COLUMNS if _is_supplied(candidate.get(column))
        )

    return LeadUpsertPlan(
        tenant_id=tenant_id,
        policy=policy,
        insert_values=insert_values,
        update_columns=update_columns,
        merge_enrichment=policy == ConflictPolicy.MERGE,
        dedup_key=dedup_key,
        dedup_value=dedup_value,
    )


class LeadDedupService:
    """
    Writes transformed leads into the tenant's lead table.
    """

    def upsert(
        self,
        uow: PipelineUnitOfWork,
        *,
        tenant_id: uuid.UUID,
        candidate: Mapping[str, Any],
        descriptor: TransformerDescriptor,
    ) -> LeadUpsertResult:
        plan = build_lead_upsert_plan(
            tenant_id=tenant_id,
            candidate=candidate,
            descriptor=descriptor,
        )
        result = uow.leads.upsert(plan)
        log_event(
            logger,
            logging.INFO,
            "lead_upserted",
            tenant_id=str(tenant_id),
            lead_id=str(result.lead_id),
            outcome=result.outcome,
            policy=plan.policy,
        )
        return result
