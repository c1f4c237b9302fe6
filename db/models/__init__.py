"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.lead import Lead
from db.models.pipeline_job import PipelineJob
from db.models.raw_record import RawRecord
from db.models.schema_fingerprint import SchemaFingerprint
from db.models.transformer_config import TransformerConfig

__all__ = [
    "Lead",
    "PipelineJob",
    "RawRecord",
    "SchemaFingerprint",
    "TransformerConfig",
]
