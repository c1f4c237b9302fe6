"""
db/repositories/transformer_config_repository.py

Persistence helpers for stored transformer descriptors.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.transformer_config import TransformerConfig


class TransformerConfigRepository:
    """
    Repository for reading stored transformer configurations.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_active(self, *, entity_type: str | None = None) -> list[TransformerConfig]:
        stmt = select(TransformerConfig).where(TransformerConfig.is_active.is_(True))
        if entity_type:
            stmt = stmt.where(TransformerConfig.entity_type == entity_type.strip())
        stmt = stmt.order_by(TransformerConfig.entity_type, TransformerConfig.created_at)
        return list(self._session.execute(stmt).scalars().all())
