"""
db/repositories/lead_repository.py

Persistence for canonical leads.

Email-keyed upserts are a single ``INSERT ... ON CONFLICT`` against the
partial unique index on ``(tenant_id, email)``, so concurrent workers
resolving the same lead cannot both insert. Other dedup keys have no unique
index and are serialized with a transaction-scoped advisory lock instead.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, literal_column, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.lead import Lead
from db.repositories.types import LeadUpsertPlan, LeadUpsertResult

ENRICHMENT_COLUMN = "enrichment_data"


class UpsertOutcome:
    INSERTED = "inserted"
    MERGED = "merged"
    REPLACED = "replaced"
    SKIPPED = "skipped"


class LeadRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_key(self, *, tenant_id: uuid.UUID, key: str, value: Any) -> Lead | None:
        column = _lead_column(key)
        stmt = select(Lead).where(Lead.tenant_id == tenant_id, column == value).limit(1)
        return self._session.scalars(stmt).first()

    def upsert(self, plan: LeadUpsertPlan) -> LeadUpsertResult:
        if plan.dedup_key is None or plan.dedup_value is None:
            return self._insert(plan)
        if plan.dedup_key == "email":
            return self._upsert_on_email(plan)
        return self._upsert_locked(plan)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _insert(self, plan: LeadUpsertPlan) -> LeadUpsertResult:
        lead = Lead(id=uuid.uuid4(), tenant_id=plan.tenant_id, **plan.insert_values)
        self._session.add(lead)
        self._session.flush()
        return LeadUpsertResult(lead_id=lead.id, outcome=UpsertOutcome.INSERTED)

    def _upsert_on_email(self, plan: LeadUpsertPlan) -> LeadUpsertResult:
        stmt = insert(Lead).values(
            id=uuid.uuid4(),
            tenant_id=plan.tenant_id,
            **plan.insert_values,
        )
        conflict_target = {
            "index_elements": [Lead.tenant_id, Lead.email],
            "index_where": Lead.email.isnot(None),
        }

        if plan.update_columns is None:
            stmt = stmt.on_conflict_do_nothing(**conflict_target).returning(Lead.id)
            inserted_id = self._session.execute(stmt).scalar_one_or_none()
            if inserted_id is not None:
                return LeadUpsertResult(lead_id=inserted_id, outcome=UpsertOutcome.INSERTED)
            existing = self.find_by_key(
                tenant_id=plan.tenant_id,
                key="email",
                value=plan.dedup_value,
            )
            if existing is None:
                raise RuntimeError("Lead conflict reported but no matching row was found.")
            return LeadUpsertResult(lead_id=existing.id, outcome=UpsertOutcome.SKIPPED)

        set_: dict[str, Any] = {
            column: stmt.excluded[column] for column in plan.update_columns
        }
        if plan.merge_enrichment and ENRICHMENT_COLUMN in set_:
            set_[ENRICHMENT_COLUMN] = Lead.__table__.c.enrichment_data.op("||")(
                stmt.excluded.enrichment_data
            )
        set_["updated_at"] = func.now()

        # xmax is 0 only for a freshly inserted tuple.
        stmt = stmt.on_conflict_do_update(**conflict_target, set_=set_).returning(
            Lead.id,
            literal_column("(xmax = 0)").label("inserted"),
        )
        row = self._session.execute(stmt).one()
        if row.inserted:
            return LeadUpsertResult(lead_id=row.id, outcome=UpsertOutcome.INSERTED)
        return LeadUpsertResult(lead_id=row.id, outcome=_update_outcome(plan))

    def _upsert_locked(self, plan: LeadUpsertPlan) -> LeadUpsertResult:
        lock_key = f"leads:{plan.tenant_id}:{plan.dedup_key}:{plan.dedup_value}"
        self._session.execute(select(func.pg_advisory_xact_lock(func.hashtext(lock_key))))

        existing = self.find_by_key(
            tenant_id=plan.tenant_id,
            key=plan.dedup_key or "",
            value=plan.dedup_value,
        )
        if existing is None:
            return self._insert(plan)
        if plan.update_columns is None:
            return LeadUpsertResult(lead_id=existing.id, outcome=UpsertOutcome.SKIPPED)

        for column in plan.update_columns:
            value = plan.insert_values.get(column)
            if column == ENRICHMENT_COLUMN and plan.merge_enrichment:
                value = {**(existing.enrichment_data or {}), **(value or {})}
            setattr(existing, column, value)
        self._session.flush()
        return LeadUpsertResult(lead_id=existing.id, outcome=_update_outcome(plan))


def _update_outcome(plan: LeadUpsertPlan) -> str:
    if plan.policy == "replace":
        return UpsertOutcome.REPLACED
    return UpsertOutcome.MERGED


def _lead_column(key: str) -> Any:
    column = Lead.__table__.c.get(key)
    if column is None:
        raise ValueError(f"Unknown lead dedup key: {key!r}")
    return column
