"""
leadflow/mapping/field_mapping.py

Flatten a semi-structured payload into a target record per an ordered list
of FieldMapping rules.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from leadflow.domain.transformer import FieldMapping
from leadflow.errors import (
    RequiredFieldMissingError,
    TransformValidationError,
    UnknownTransformError,
)
from leadflow.mapping.transforms import TRANSFORM_FUNCTIONS, TransformFn

ROOT_MARKER = "$."

_MISSING = object()


def resolve_path(data: Any, path: str) -> Any:
    """
    Resolve a dotted path such as ``$.company.name`` against ``data``.

    Returns None when any segment is absent or an intermediate value is not
    a mapping. Array indexing is not supported.
    """

    normalized = path[len(ROOT_MARKER):] if path.startswith(ROOT_MARKER) else path
    if not normalized:
        return None

    current: Any = data
    for segment in normalized.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment, _MISSING)
        if current is _MISSING:
            return None
    return current


class FieldMappingEngine:
    """
    Apply FieldMapping rules with a fixed table of transform functions.

    The engine holds no per-call state; the same input and mapping list
    always produce the same output.
    """

    def __init__(self, transforms: Mapping[str, TransformFn] | None = None) -> None:
        self._transforms = transforms if transforms is not None else TRANSFORM_FUNCTIONS

    def apply(
        self,
        raw_data: Mapping[str, Any],
        mappings: Iterable[FieldMapping],
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}

        for mapping in mappings:
            value = resolve_path(raw_data, mapping.source)
            if value is None:
                value = mapping.default_value
            if value is None:
                if mapping.required:
                    raise RequiredFieldMissingError(
                        f'Required field "{mapping.source}" is missing from raw data',
                        context={"source": mapping.source, "target": mapping.target},
                    )
                continue

            if mapping.transform:
                value = self.apply_transform(mapping.transform, value, mapping=mapping)
            result[mapping.target] = value

        return result

    def apply_transform(
        self,
        name: str,
        value: Any,
        *,
        mapping: FieldMapping | None = None,
    ) -> Any:
        transform_fn = self._transforms.get(name)
        context = {"transform": name}
        if mapping is not None:
            context.update({"source": mapping.source, "target": mapping.target})

        if transform_fn is None:
            raise UnknownTransformError(
                f'Unknown transform function: "{name}"',
                context=context,
            )
        try:
            return transform_fn(value)
        except (TypeError, ValueError) as exc:
            raise TransformValidationError(str(exc), context=context) from exc


_DEFAULT_ENGINE = FieldMappingEngine()


def apply_field_mappings(
    raw_data: Mapping[str, Any],
    mappings: Iterable[FieldMapping],
) -> dict[str, Any]:
    """
    Convenience wrapper using the built-in transform table.
    """

    return _DEFAULT_ENGINE.apply(raw_data, mappings)
