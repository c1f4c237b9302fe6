"""
Declarative field mapping: path resolution and named value transforms.
"""

from leadflow.mapping.field_mapping import FieldMappingEngine, apply_field_mappings, resolve_path
from leadflow.mapping.transforms import TRANSFORM_FUNCTIONS, get_transform

__all__ = [
    "FieldMappingEngine",
    "TRANSFORM_FUNCTIONS",
    "apply_field_mappings",
    "get_transform",
    "resolve_path",
]
