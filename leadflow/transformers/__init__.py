"""
Concrete transformers and the default registry builder.
"""

from leadflow.transformers.lead_transformer import (
    DEFAULT_LEAD_FIELD_MAPPINGS,
    LEAD_FALLBACK_RULES,
    LeadTransformer,
    build_default_registry,
)

__all__ = [
    "DEFAULT_LEAD_FIELD_MAPPINGS",
    "LEAD_FALLBACK_RULES",
    "LeadTransformer",
    "build_default_registry",
]
