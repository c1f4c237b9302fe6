"""
leadflow/services/fingerprint_service.py

Schema fingerprints record which top-level keys, and which JSON types,
appear in raw payloads for one source table and workflow. They are written
on every fingerprint job; comparing successive fingerprints for drift is not
implemented yet.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from db.repositories.types import FingerprintObservation
from db.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWorkFactory
from leadflow.errors import InvalidJobPayloadError
from leadflow.logging_utils import log_event

logger = logging.getLogger(__name__)

SUPPORTED_SOURCE_TABLES = frozenset({"raw_records"})


def json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def extract_fingerprint(samples: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """
    Union of top-level keys across samples with their observed type names.

    A key seen with several types maps to the sorted names joined by ``|``.
    """

    observed: dict[str, set[str]] = {}
    for sample in samples:
        if not isinstance(sample, Mapping):
            continue
        for key, value in sample.items():
            observed.setdefault(str(key), set()).add(json_type_name(value))

    keys = sorted(observed)
    return {
        "keys": keys,
        "types": {key: "|".join(sorted(observed[key])) for key in keys},
    }


class FingerprintService:
    def __init__(self, uow_factory: UnitOfWorkFactory | None = None) -> None:
        self._uow_factory = uow_factory or SqlAlchemyUnitOfWork

    def record_samples(
        self,
        *,
        source_table: str,
        workflow_id: str | None,
        sample_ids: Sequence[uuid.UUID],
    ) -> FingerprintObservation | None:
        """
        Fingerprint the given raw records and upsert the stored shape.

        Returns None when none of the sample ids resolve to a record.
        """

        if source_table not in SUPPORTED_SOURCE_TABLES:
            raise InvalidJobPayloadError(
                f"Unsupported fingerprint source table: {source_table}",
                context={"source_table": source_table},
            )

        with self._uow_factory() as uow:
            records = uow.raw_records.get_many(sample_ids)
            if not records:
                log_event(
                    logger,
                    logging.WARNING,
                    "fingerprint_no_samples",
                    source_table=source_table,
                    workflow_id=workflow_id,
                    requested=len(sample_ids),
                )
                return None

            observation = FingerprintObservation(
                source_table=source_table,
                workflow_id=workflow_id,
                fingerprint=extract_fingerprint(record.raw_data for record in records),
                sample_count=len(records),
                observed_at=datetime.now(timezone.utc),
            )
            uow.fingerprints.record(observation)

        log_event(
            logger,
            logging.INFO,
            "fingerprint_recorded",
            source_table=source_table,
            workflow_id=workflow_id,
            sample_count=observation.sample_count,
            key_count=len(observation.fingerprint["keys"]),
        )
        return observation
