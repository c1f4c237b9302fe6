"""
db/models/transformer_config.py

Stored transformer descriptors loaded into the registry at worker startup.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Index, String, UniqueConstraint, true
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TransformerConfig(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "transformer_configs"

    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    source_table: Mapped[str] = mapped_column(
        String(120), nullable=False, default="raw_records", server_default="raw_records"
    )
    target_table: Mapped[str] = mapped_column(String(120), nullable=False)
    version: Mapped[str] = mapped_column(String(32), nullable=False)
    field_mappings: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Ordered list of {source, target, required, default_value, transform}",
    )
    dedup_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    on_conflict: Mapped[str] = mapped_column(
        String(16), nullable=False, default="merge", server_default="merge"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        UniqueConstraint("entity_type", "version", name="uq_transformer_configs_entity_version"),
        Index("ix_transformer_configs_entity_active", "entity_type", "is_active"),
    )
