"""
Repository layer exports.
"""

from db.repositories.lead_repository import LeadRepository, UpsertOutcome
from db.repositories.pipeline_job_repository import PipelineJobRepository
from db.repositories.raw_record_repository import RawRecordRepository
from db.repositories.schema_fingerprint_repository import SchemaFingerprintRepository
from db.repositories.transformer_config_repository import TransformerConfigRepository
from db.repositories.types import (
    FingerprintObservation,
    LeadUpsertPlan,
    LeadUpsertResult,
    RawRecordCreate,
)

__all__ = [
    "LeadRepository",
    "UpsertOutcome",
    "PipelineJobRepository",
    "RawRecordRepository",
    "SchemaFingerprintRepository",
    "TransformerConfigRepository",
    "FingerprintObservation",
    "LeadUpsertPlan",
    "LeadUpsertResult",
    "RawRecordCreate",
]
