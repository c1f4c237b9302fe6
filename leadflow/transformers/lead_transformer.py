"""
leadflow/transformers/lead_transformer.py

Transformer for entity type "lead".

Raw lead payloads arrive from webhooks, CSV imports and enrichment tools
with inconsistent key naming. The transformer runs the primary mappings,
fills still-missing targets from an ordered list of alternate source paths,
copies the nested company name into enrichment data, then validates the
result against StructuredLead.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from pydantic import ValidationError

from leadflow.domain.lead import StructuredLead
from leadflow.domain.transformer import (
    ConflictPolicy,
    FieldMapping,
    Transformer,
    TransformerDescriptor,
)
from leadflow.errors import TransformValidationError
from leadflow.mapping.field_mapping import FieldMappingEngine, resolve_path
from leadflow.registry.transformer_registry import TransformerRegistry

LEAD_ENTITY_TYPE = "lead"
LEAD_TRANSFORMER_VERSION = "1.0.0"
COMPANY_NAME_PATH = "$.company.name"
COMPANY_NAME_KEY = "companyName"

DEFAULT_LEAD_FIELD_MAPPINGS: tuple[FieldMapping, ...] = (
    FieldMapping(source="$.email", target="email", required=True),
    FieldMapping(source="$.firstName", target="first_name", transform="trim"),
    FieldMapping(source="$.lastName", target="last_name", transform="trim"),
    FieldMapping(source="$.phone", target="phone", transform="normalize_phone"),
    FieldMapping(source="$.jobTitle", target="job_title", transform="trim"),
    FieldMapping(source="$.linkedinUrl", target="linkedin_url"),
    FieldMapping(source="$.source", target="source", transform="trim"),
    FieldMapping(source="$.tags", target="tags"),
)


@dataclass(frozen=True)
class FallbackRule:
    """
    Alternate source path tried only when ``target`` is still unresolved.
    """

    source: str
    target: str
    transform: str | None = None


# Order matters: the first rule that resolves a value wins for its target.
LEAD_FALLBACK_RULES: tuple[FallbackRule, ...] = (
    FallbackRule(source="$.first_name", target="first_name", transform="trim"),
    FallbackRule(source="$.last_name", target="last_name", transform="trim"),
    FallbackRule(source="$.surname", target="last_name", transform="trim"),
    FallbackRule(source="$.job_title", target="job_title", transform="trim"),
    FallbackRule(source="$.title", target="job_title", transform="trim"),
    FallbackRule(source="$.position", target="job_title", transform="trim"),
    FallbackRule(source="$.role", target="job_title", transform="trim"),
    FallbackRule(source="$.phone_number", target="phone", transform="normalize_phone"),
    FallbackRule(source="$.phoneNumber", target="phone", transform="normalize_phone"),
    FallbackRule(source="$.linkedin_url", target="linkedin_url"),
    FallbackRule(source="$.linkedin", target="linkedin_url"),
    FallbackRule(source="$.lead_source", target="source", transform="trim"),
    FallbackRule(source="$.labels", target="tags"),
)


def default_lead_descriptor() -> TransformerDescriptor:
    return TransformerDescriptor(
        entity_type=LEAD_ENTITY_TYPE,
        version=LEAD_TRANSFORMER_VERSION,
        field_mappings=DEFAULT_LEAD_FIELD_MAPPINGS,
        dedup_key="email",
        on_conflict=ConflictPolicy.MERGE,
        source_table="raw_records",
        target_table="leads",
    )


class LeadTransformer(Transformer):
    def __init__(
        self,
        descriptor: TransformerDescriptor | None = None,
        *,
        engine: FieldMappingEngine | None = None,
        fallback_rules: tuple[FallbackRule, ...] = LEAD_FALLBACK_RULES,
        **overrides: Any,
    ) -> None:
        base = descriptor or default_lead_descriptor()
        if overrides:
            base = replace(base, **overrides)
        if base.entity_type != LEAD_ENTITY_TYPE:
            raise ValueError(f"LeadTransformer cannot serve entity type {base.entity_type!r}.")
        super().__init__(base)
        self._engine = engine or FieldMappingEngine()
        self._fallback_rules = fallback_rules

    def transform(self, raw_data: Mapping[str, Any]) -> dict[str, Any]:
        result = self._engine.apply(raw_data, self.descriptor.field_mappings)

        for rule in self._fallback_rules:
            if result.get(rule.target) is not None:
                continue
            value = resolve_path(raw_data, rule.source)
            if value is None:
                continue
            if rule.transform:
                value = self._engine.apply_transform(rule.transform, value)
            result[rule.target] = value

        company_name = resolve_path(raw_data, COMPANY_NAME_PATH)
        if company_name is not None:
            existing = result.get("enrichment_data")
            enrichment = dict(existing) if isinstance(existing, Mapping) else {}
            enrichment[COMPANY_NAME_KEY] = company_name
            result["enrichment_data"] = enrichment

        return self.validate(result)

    def validate(self, data: Mapping[str, Any]) -> dict[str, Any]:
        try:
            lead = StructuredLead.model_validate(dict(data))
        except ValidationError as exc:
            raise TransformValidationError(
                _format_validation_error(exc),
                context={
                    "errors": exc.errors(
                        include_url=False, include_context=False, include_input=False
                    )
                },
            ) from exc
        return lead.model_dump()


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(item) for item in error.get("loc", ())) or "record"
        message = str(error.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        parts.append(f"{location}: {message}")
    return "Lead validation failed: " + "; ".join(parts)


def build_default_registry() -> TransformerRegistry:
    """
    Return a fresh registry holding the built-in transformers.
    """

    registry = TransformerRegistry()
    registry.register(LeadTransformer())
    return registry
