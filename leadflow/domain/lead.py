"""
leadflow/domain/lead.py

Canonical shape of a structured lead.
"""

from __future__ import annotations

import re
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

LeadStatusValue = Literal["new", "contacted", "qualified", "converted", "lost"]


class StructuredLead(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=False)

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    job_title: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    source: str | None = None
    source_workflow: str | None = None
    enrichment_data: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    status: LeadStatusValue = "new"
    notes: str | None = None

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value

    @field_validator("linkedin_url")
    @classmethod
    def _validate_linkedin_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("LinkedIn URL must be an http(s) URL")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [part for part in value.split(",")]
        if not isinstance(value, (list, tuple, set)):
            return value

        unique: list[str] = []
        for item in value:
            tag = str(item).strip()
            if tag and tag not in unique:
                unique.append(tag)
        return unique
