"""
Repository for observed raw payload shapes.
"""

from __future__ import annotations

import uuid

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.schema_fingerprint import SchemaFingerprint
from db.repositories.types import FingerprintObservation


class SchemaFingerprintRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def record(self, observation: FingerprintObservation) -> uuid.UUID:
        """
        Insert a new fingerprint, or replace the stored shape and add to its
        sample count.

        One ``INSERT ... ON CONFLICT`` against the partial unique index that
        matches the workflow id, so two first-seen jobs for the same source
        and workflow end up on one row.
        """

        stmt = insert(SchemaFingerprint).values(
            id=uuid.uuid4(),
            source_table=observation.source_table,
            workflow_id=observation.workflow_id,
            fingerprint=observation.fingerprint,
            sample_count=observation.sample_count,
            first_seen_at=observation.observed_at,
            last_seen_at=observation.observed_at,
        )
        if observation.workflow_id is None:
            conflict_target = {
                "index_elements": [SchemaFingerprint.source_table],
                "index_where": SchemaFingerprint.workflow_id.is_(None),
            }
        else:
            conflict_target = {
                "index_elements": [SchemaFingerprint.source_table, SchemaFingerprint.workflow_id],
                "index_where": SchemaFingerprint.workflow_id.isnot(None),
            }

        stmt = stmt.on_conflict_do_update(
            **conflict_target,
            set_={
                "fingerprint": stmt.excluded.fingerprint,
                "sample_count": SchemaFingerprint.__table__.c.sample_count
                + stmt.excluded.sample_count,
                "last_seen_at": stmt.excluded.last_seen_at,
            },
        ).returning(SchemaFingerprint.id)
        return self._session.execute(stmt).scalar_one()
