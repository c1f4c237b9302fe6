"""
leadflow/registry/loader.py

Hydrate a registry with transformer versions stored in ``transformer_configs``.

Stored rows only carry configuration; each entity type must have a built-in
transformer class that knows how to run it. Rows for other entity types, or
rows that fail to parse, are logged and skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from db.models.lead import LEAD_MERGEABLE_COLUMNS
from db.models.transformer_config import TransformerConfig
from db.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWorkFactory
from leadflow.domain.transformer import Transformer, TransformerDescriptor
from leadflow.logging_utils import log_event
from leadflow.registry.transformer_registry import TransformerRegistry
from leadflow.transformers.lead_transformer import LEAD_ENTITY_TYPE, LeadTransformer

logger = logging.getLogger(__name__)

TransformerFactory = Callable[[TransformerDescriptor], Transformer]

BUILTIN_FACTORIES: Mapping[str, TransformerFactory] = {
    LEAD_ENTITY_TYPE: LeadTransformer,
}

_LEAD_DEDUP_KEYS = frozenset({"email", *LEAD_MERGEABLE_COLUMNS})


def descriptor_from_config(config: TransformerConfig) -> TransformerDescriptor:
    descriptor = TransformerDescriptor.with_mappings(
        entity_type=config.entity_type,
        version=config.version,
        mappings=config.field_mappings or [],
        dedup_key=config.dedup_key or None,
        on_conflict=config.on_conflict,
        source_table=config.source_table,
        target_table=config.target_table,
    )
    if descriptor.entity_type == LEAD_ENTITY_TYPE and descriptor.dedup_key not in (
        None,
        *_LEAD_DEDUP_KEYS,
    ):
        raise ValueError(f"Unsupported lead dedup key: {descriptor.dedup_key!r}")
    return descriptor


def register_configs(
    registry: TransformerRegistry,
    configs: Iterable[TransformerConfig],
    factories: Mapping[str, TransformerFactory] = BUILTIN_FACTORIES,
) -> int:
    registered = 0
    for config in configs:
        factory = factories.get(config.entity_type)
        if factory is None:
            logger.warning(
                "Skipping transformer config %s: no transformer for entity type %r",
                config.id,
                config.entity_type,
            )
            continue
        try:
            descriptor = descriptor_from_config(config)
        except ValueError as exc:
            logger.warning("Skipping transformer config %s: %s", config.id, exc)
            continue

        registry.register(factory(descriptor))
        registered += 1
        log_event(
            logger,
            logging.INFO,
            "transformer_config_registered",
            entity_type=descriptor.entity_type,
            version=descriptor.version,
        )
    return registered


def load_registry_configs(
    registry: TransformerRegistry,
    uow_factory: UnitOfWorkFactory | None = None,
) -> int:
    """
    Register every active stored config. Returns how many were registered.
    """

    with (uow_factory or SqlAlchemyUnitOfWork)() as uow:
        configs = uow.transformer_configs.list_active()
    return register_configs(registry, configs)
