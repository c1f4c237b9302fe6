"""
Versioned transformer lookup.
"""

from leadflow.registry.transformer_registry import (
    TransformerRegistry,
    compare_semver,
    parse_semver,
)

__all__ = ["TransformerRegistry", "compare_semver", "parse_semver"]
