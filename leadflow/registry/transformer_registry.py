"""
leadflow/registry/transformer_registry.py

Holds Transformer implementations keyed by (entity_type, version) and picks
the latest one by numeric semver ordering.
"""

from __future__ import annotations

import logging
import threading
from functools import cmp_to_key

from leadflow.domain.transformer import Transformer
from leadflow.errors import UnsupportedEntityTypeError

logger = logging.getLogger(__name__)


def parse_semver(version: str) -> tuple[int, ...]:
    """
    Split a dotted version into integer segments.

    Segments that are not plain integers count as 0.
    """

    segments: list[int] = []
    for part in version.strip().split("."):
        try:
            segments.append(int(part))
        except ValueError:
            segments.append(0)
    return tuple(segments)


def compare_semver(left: str, right: str) -> int:
    """
    Return -1, 0 or 1. Missing trailing segments compare as 0.
    """

    a = parse_semver(left)
    b = parse_semver(right)
    width = max(len(a), len(b))
    a = a + (0,) * (width - len(a))
    b = b + (0,) * (width - len(b))
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


_semver_key = cmp_to_key(compare_semver)


class TransformerRegistry:
    """
    Registry of transformers for every supported entity type.

    Construct one per process (or per test) and pass it to the workers.
    """

    def __init__(self) -> None:
        self._transformers: dict[str, dict[str, Transformer]] = {}
        self._lock = threading.Lock()

    def register(self, transformer: Transformer) -> None:
        """
        Store a transformer; an existing (entity_type, version) is replaced.
        """

        with self._lock:
            versions = self._transformers.setdefault(transformer.entity_type, {})
            if transformer.version in versions:
                logger.debug(
                    "Replacing transformer entity_type=%s version=%s",
                    transformer.entity_type,
                    transformer.version,
                )
            versions[transformer.version] = transformer

    def get(self, entity_type: str, version: str | None = None) -> Transformer | None:
        if version is None:
            return self.get_latest(entity_type)
        return self._transformers.get(entity_type, {}).get(version)

    def get_latest(self, entity_type: str) -> Transformer | None:
        with self._lock:
            versions = dict(self._transformers.get(entity_type, {}))
        if not versions:
            return None
        latest = max(versions, key=_semver_key)
        return versions[latest]

    def require(self, entity_type: str, version: str | None = None) -> Transformer:
        """
        Like ``get`` but raises UnsupportedEntityTypeError when nothing matches.
        """

        transformer = self.get(entity_type, version)
        if transformer is None:
            supported = ", ".join(f"'{name}'" for name in self.list_entity_types()) or "none"
            raise UnsupportedEntityTypeError(
                f"Unsupported entity type: {entity_type}. Supported: {supported}.",
                context={"entity_type": entity_type, "version": version},
            )
        return transformer

    def has(self, entity_type: str) -> bool:
        return bool(self._transformers.get(entity_type))

    def list_entity_types(self) -> list[str]:
        return sorted(self._transformers)

    def list_versions(self, entity_type: str) -> list[str]:
        with self._lock:
            versions = list(self._transformers.get(entity_type, {}))
        return sorted(versions, key=_semver_key)
