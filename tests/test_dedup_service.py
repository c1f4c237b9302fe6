"""
tests/test_dedup_service.py

Conflict-policy planning and tenant-scoped merge behaviour of the lead
dedup/upsert engine.
"""

from __future__ import annotations

import uuid

import pytest

from db.models.lead import LEAD_MERGEABLE_COLUMNS
from db.repositories.lead_repository import UpsertOutcome
from fakes import FakeUnitOfWorkFactory, InMemoryStore
from leadflow.domain.transformer import ConflictPolicy
from leadflow.services.dedup_service import LeadDedupService, build_lead_upsert_plan
from leadflow.transformers.lead_transformer import LeadTransformer


def _descriptor(policy: str = ConflictPolicy.MERGE):
    return LeadTransformer(on_conflict=policy).descriptor


def _candidate(**values):
    return LeadTransformer().validate(values)


class TestBuildLeadUpsertPlan:
    def test_merge_updates_only_supplied_columns(self, tenant_id: uuid.UUID) -> None:
        plan = build_lead_upsert_plan(
            tenant_id=tenant_id,
            candidate=_candidate(email="jane@x.com", first_name="Jane", enrichment_data={"a": 1}),
            descriptor=_descriptor(),
        )

        assert plan.policy == ConflictPolicy.MERGE
        assert plan.update_columns == ("first_name", "enrichment_data")
        assert plan.merge_enrichment is True
        assert plan.dedup_key == "email"
        assert plan.dedup_value == "jane@x.com"

    def test_merge_never_updates_status(self, tenant_id: uuid.UUID) -> None:
        plan = build_lead_upsert_plan(
            tenant_id=tenant_id,
            candidate=_candidate(email="jane@x.com", status="qualified"),
            descriptor=_descriptor(),
        )
        assert "status" not in (plan.update_columns or ())
        assert plan.insert_values["status"] == "qualified"

    def test_insert_values_carry_shape_defaults(self, tenant_id: uuid.UUID) -> None:
        plan = build_lead_upsert_plan(
            tenant_id=tenant_id,
            candidate={"email": "jane@x.com"},
            descriptor=_descriptor(),
        )

        assert plan.insert_values["status"] == "new"
        assert plan.insert_values["tags"] == []
        assert plan.insert_values["enrichment_data"] == {}
        assert plan.insert_values["first_name"] is None

    def test_skip_has_no_update(self, tenant_id: uuid.UUID) -> None:
        plan = build_lead_upsert_plan(
            tenant_id=tenant_id,
            candidate=_candidate(email="jane@x.com", first_name="Jane"),
            descriptor=_descriptor(ConflictPolicy.SKIP),
        )
        assert plan.update_columns is None

    def test_replace_updates_every_writable_column(self, tenant_id: uuid.UUID) -> None:
        plan = build_lead_upsert_plan(
            tenant_id=tenant_id,
            candidate=_candidate(email="jane@x.com"),
            descriptor=_descriptor(ConflictPolicy.REPLACE),
        )
        assert plan.update_columns == LEAD_MERGEABLE_COLUMNS
        assert plan.merge_enrichment is False

    @pytest.mark.parametrize("email", [None, "", "   "])
    def test_blank_dedup_value_disables_lookup(self, tenant_id: uuid.UUID, email) -> None:
        plan = build_lead_upsert_plan(
            tenant_id=tenant_id,
            candidate={"email": email, "first_name": "Jane"},
            descriptor=_descriptor(),
        )
        assert plan.dedup_value is None


class TestLeadDedupService:
    @pytest.fixture()
    def service(self) -> LeadDedupService:
        return LeadDedupService()

    def _upsert(self, uow_factory, service, tenant_id, candidate, policy=ConflictPolicy.MERGE):
        with uow_factory() as uow:
            return service.upsert(
                uow,
                tenant_id=tenant_id,
                candidate=candidate,
                descriptor=_descriptor(policy),
            )

    def test_inserts_when_no_match(
        self,
        store: InMemoryStore,
        uow_factory: FakeUnitOfWorkFactory,
        service: LeadDedupService,
        tenant_id: uuid.UUID,
    ) -> None:
        result = self._upsert(uow_factory, service, tenant_id, _candidate(email="jane@x.com"))

        assert result.outcome == UpsertOutcome.INSERTED
        lead = store.leads[result.lead_id]
        assert lead.email == "jane@x.com"
        assert lead.status == "new"

    def test_merge_keeps_existing_and_adopts_candidate_fields(
        self,
        store: InMemoryStore,
        uow_factory: FakeUnitOfWorkFactory,
        service: LeadDedupService,
        tenant_id: uuid.UUID,
    ) -> None:
        existing = store.add_lead(
            tenant_id=tenant_id,
            email="jane@x.com",
            first_name="Jane",
            last_name="Doe",
            phone="+15550100",
            status="qualified",
            enrichment_data={"companyName": "Acme", "size": 50},
        )

        result = self._upsert(
            uow_factory,
            service,
            tenant_id,
            _candidate(
                email="jane@x.com",
                job_title="CTO",
                phone="+15550199",
                enrichment_data={"companyName": "Acme Corp"},
            ),
        )

        assert result.outcome == UpsertOutcome.MERGED
        assert result.lead_id == existing.id
        lead = store.leads[existing.id]
        assert lead.first_name == "Jane"
        assert lead.last_name == "Doe"
        assert lead.job_title == "CTO"
        assert lead.phone == "+15550199"
        assert lead.status == "qualified"
        assert lead.enrichment_data == {"companyName": "Acme Corp", "size": 50}
        assert len(store.leads) == 1

    def test_skip_leaves_existing_untouched(
        self,
        store: InMemoryStore,
        uow_factory: FakeUnitOfWorkFactory,
        service: LeadDedupService,
        tenant_id: uuid.UUID,
    ) -> None:
        existing = store.add_lead(tenant_id=tenant_id, email="jane@x.com", first_name="Jane")

        result = self._upsert(
            uow_factory,
            service,
            tenant_id,
            _candidate(email="jane@x.com", first_name="Janet"),
            policy=ConflictPolicy.SKIP,
        )

        assert result.outcome == UpsertOutcome.SKIPPED
        assert store.leads[existing.id].first_name == "Jane"

    def test_replace_clears_omitted_fields(
        self,
        store: InMemoryStore,
        uow_factory: FakeUnitOfWorkFactory,
        service: LeadDedupService,
        tenant_id: uuid.UUID,
    ) -> None:
        existing = store.add_lead(
            tenant_id=tenant_id,
            email="jane@x.com",
            first_name="Jane",
            last_name="Doe",
            status="contacted",
            enrichment_data={"companyName": "Acme"},
        )

        result = self._upsert(
            uow_factory,
            service,
            tenant_id,
            _candidate(email="jane@x.com", first_name="Janet"),
            policy=ConflictPolicy.REPLACE,
        )

        assert result.outcome == UpsertOutcome.REPLACED
        lead = store.leads[existing.id]
        assert lead.first_name == "Janet"
        assert lead.last_name is None
        assert lead.enrichment_data == {}
        assert lead.status == "contacted"

    def test_dedup_is_tenant_scoped(
        self,
        store: InMemoryStore,
        uow_factory: FakeUnitOfWorkFactory,
        service: LeadDedupService,
    ) -> None:
        tenant_a = uuid.uuid4()
        tenant_b = uuid.uuid4()
        lead_a = store.add_lead(tenant_id=tenant_a, email="jane@x.com", first_name="Jane")

        result = self._upsert(
            uow_factory,
            service,
            tenant_b,
            _candidate(email="jane@x.com", first_name="Other"),
        )

        assert result.outcome == UpsertOutcome.INSERTED
        assert result.lead_id != lead_a.id
        assert store.leads[lead_a.id].first_name == "Jane"
        assert len(store.leads_for(tenant_a)) == 1
        assert len(store.leads_for(tenant_b)) == 1
