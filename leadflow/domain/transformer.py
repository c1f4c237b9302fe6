"""
leadflow/domain/transformer.py

Declarative transformer configuration and the Transformer base class.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


class ConflictPolicy:
    MERGE = "merge"
    SKIP = "skip"
    REPLACE = "replace"

    ALL: tuple[str, ...] = (MERGE, SKIP, REPLACE)


@dataclass(frozen=True)
class FieldMapping:
    """
    One extraction rule: read ``source``, write ``target``.

    ``default_value`` of ``None`` means "no default".
    """

    source: str
    target: str
    required: bool = False
    default_value: Any = None
    transform: str | None = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> FieldMapping:
        """
        Build a mapping from a stored JSON object.

        Accepts both snake_case and camelCase keys for ``default_value``.
        """

        source = payload.get("source")
        target = payload.get("target")
        if not isinstance(source, str) or not source.strip():
            raise ValueError("Field mapping requires a non-empty 'source'.")
        if not isinstance(target, str) or not target.strip():
            raise ValueError("Field mapping requires a non-empty 'target'.")

        default_value = payload.get("default_value", payload.get("defaultValue"))
        transform = payload.get("transform")
        if transform is not None and not isinstance(transform, str):
            raise ValueError("Field mapping 'transform' must be a string.")

        return cls(
            source=source.strip(),
            target=target.strip(),
            required=bool(payload.get("required", False)),
            default_value=default_value,
            transform=transform or None,
        )


@dataclass(frozen=True)
class TransformerDescriptor:
    """
    Versioned configuration for one entity type.
    """

    entity_type: str
    version: str
    field_mappings: tuple[FieldMapping, ...] = field(default_factory=tuple)
    dedup_key: str | None = None
    on_conflict: str = ConflictPolicy.MERGE
    source_table: str = "raw_records"
    target_table: str | None = None

    def __post_init__(self) -> None:
        if not self.entity_type:
            raise ValueError("Transformer descriptor requires an entity_type.")
        if not self.version:
            raise ValueError("Transformer descriptor requires a version.")
        if self.on_conflict not in ConflictPolicy.ALL:
            raise ValueError(
                f"Unsupported conflict policy: {self.on_conflict!r}. "
                f"Expected one of {', '.join(ConflictPolicy.ALL)}."
            )
        # Accept any iterable but store an immutable tuple.
        object.__setattr__(self, "field_mappings", tuple(self.field_mappings))

    @classmethod
    def with_mappings(
        cls,
        *,
        entity_type: str,
        version: str,
        mappings: Iterable[FieldMapping | Mapping[str, Any]],
        **kwargs: Any,
    ) -> TransformerDescriptor:
        parsed = tuple(
            item if isinstance(item, FieldMapping) else FieldMapping.from_dict(item)
            for item in mappings
        )
        return cls(entity_type=entity_type, version=version, field_mappings=parsed, **kwargs)


class Transformer(ABC):
    """
    Turns one raw payload into a validated canonical record.

    Subclasses must:
    - expose a ``descriptor``
    - implement ``transform(raw_data)`` returning the validated record
    - implement ``validate(data)`` checking an assembled record
    """

    def __init__(self, descriptor: TransformerDescriptor) -> None:
        self.descriptor = descriptor

    @property
    def entity_type(self) -> str:
        return self.descriptor.entity_type

    @property
    def version(self) -> str:
        return self.descriptor.version

    @abstractmethod
    def transform(self, raw_data: Mapping[str, Any]) -> dict[str, Any]:
        """Map, enrich and validate one raw payload."""

    @abstractmethod
    def validate(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate an assembled record and return it with defaults applied."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(entity_type={self.entity_type!r}, version={self.version!r})"
