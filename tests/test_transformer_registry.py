"""
tests/test_transformer_registry.py

Version resolution and introspection of TransformerRegistry.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from leadflow.domain.transformer import Transformer, TransformerDescriptor
from leadflow.errors import ErrorKind, UnsupportedEntityTypeError
from leadflow.registry.transformer_registry import (
    TransformerRegistry,
    compare_semver,
    parse_semver,
)


class EchoTransformer(Transformer):
    def __init__(self, entity_type: str, version: str) -> None:
        super().__init__(TransformerDescriptor(entity_type=entity_type, version=version))

    def transform(self, raw_data: Mapping[str, Any]) -> dict[str, Any]:
        return self.validate(raw_data)

    def validate(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return dict(data)


def _registry_with(entity_type: str, *versions: str) -> TransformerRegistry:
    registry = TransformerRegistry()
    for version in versions:
        registry.register(EchoTransformer(entity_type, version))
    return registry


class TestSemver:
    def test_parse_semver(self) -> None:
        assert parse_semver("1.2.3") == (1, 2, 3)
        assert parse_semver("2") == (2,)
        assert parse_semver("1.x.3") == (1, 0, 3)

    @pytest.mark.parametrize(
        ("left", "right", "expected"),
        [
            ("1.0.10", "1.0.1", 1),
            ("1.0.1", "1.0.10", -1),
            ("1.0", "1.0.0", 0),
            ("2", "1.9.9", 1),
            ("1.1.0", "1.1.0", 0),
        ],
    )
    def test_compare_is_numeric_per_segment(self, left: str, right: str, expected: int) -> None:
        assert compare_semver(left, right) == expected


class TestTransformerRegistry:
    def test_latest_by_major_version(self) -> None:
        registry = _registry_with("lead", "2.0.0", "1.0.0", "1.1.0")
        latest = registry.get_latest("lead")
        assert latest is not None
        assert latest.version == "2.0.0"

    def test_latest_is_numeric_not_lexicographic(self) -> None:
        registry = _registry_with("lead", "1.0.0", "1.0.10", "1.0.1")
        latest = registry.get_latest("lead")
        assert latest is not None
        assert latest.version == "1.0.10"

    def test_get_exact_version(self) -> None:
        registry = _registry_with("lead", "1.0.0", "1.1.0")
        transformer = registry.get("lead", "1.0.0")
        assert transformer is not None
        assert transformer.version == "1.0.0"
        assert registry.get("lead", "9.9.9") is None

    def test_get_without_version_returns_latest(self) -> None:
        registry = _registry_with("lead", "1.0.0", "1.1.0")
        transformer = registry.get("lead")
        assert transformer is not None
        assert transformer.version == "1.1.0"

    def test_unknown_entity_type(self) -> None:
        registry = _registry_with("lead", "1.0.0")
        assert registry.get_latest("contact") is None
        assert registry.get("contact") is None
        assert registry.has("contact") is False

    def test_register_overwrites_same_version(self) -> None:
        registry = TransformerRegistry()
        first = EchoTransformer("lead", "1.0.0")
        second = EchoTransformer("lead", "1.0.0")
        registry.register(first)
        registry.register(second)

        assert registry.get("lead", "1.0.0") is second
        assert registry.list_versions("lead") == ["1.0.0"]

    def test_introspection(self) -> None:
        registry = _registry_with("lead", "1.0.10", "1.0.1", "1.0.0")
        registry.register(EchoTransformer("account", "0.1.0"))

        assert registry.has("lead") is True
        assert registry.list_entity_types() == ["account", "lead"]
        assert registry.list_versions("lead") == ["1.0.0", "1.0.1", "1.0.10"]
        assert registry.list_versions("contact") == []

    def test_require_raises_unsupported_entity_type(self) -> None:
        registry = _registry_with("lead", "1.0.0")

        with pytest.raises(UnsupportedEntityTypeError) as exc_info:
            registry.require("contact")

        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_ENTITY_TYPE
        assert "Unsupported entity type: contact" in exc_info.value.message

    def test_registries_are_isolated(self) -> None:
        first = _registry_with("lead", "1.0.0")
        second = TransformerRegistry()
        assert first.has("lead")
        assert not second.has("lead")


def test_descriptor_rejects_unknown_conflict_policy() -> None:
    with pytest.raises(ValueError, match="Unsupported conflict policy"):
        TransformerDescriptor(entity_type="lead", version="1.0.0", on_conflict="upsert")
