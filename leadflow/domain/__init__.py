"""
Domain types shared by the mapping engine, registry and workers.
"""

from leadflow.domain.lead import StructuredLead
from leadflow.domain.transformer import (
    ConflictPolicy,
    FieldMapping,
    Transformer,
    TransformerDescriptor,
)

__all__ = [
    "ConflictPolicy",
    "FieldMapping",
    "StructuredLead",
    "Transformer",
    "TransformerDescriptor",
]
