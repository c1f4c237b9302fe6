from __future__ import annotations

import uuid

import pytest

from fakes import FakeUnitOfWorkFactory, InMemoryJobQueue, InMemoryStore
from leadflow.registry.transformer_registry import TransformerRegistry
from leadflow.transformers.lead_transformer import build_default_registry


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def uow_factory(store: InMemoryStore) -> FakeUnitOfWorkFactory:
    return FakeUnitOfWorkFactory(store)


@pytest.fixture()
def job_queue() -> InMemoryJobQueue:
    return InMemoryJobQueue()


@pytest.fixture()
def registry() -> TransformerRegistry:
    return build_default_registry()


@pytest.fixture()
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()
