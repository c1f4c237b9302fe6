"""
leadflow/errors.py

Pipeline error taxonomy.

Every pipeline failure carries a machine-readable ``kind`` next to its
human-readable message, so retry logic and API responses can branch on the
category instead of parsing text.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError


class ErrorKind:
    NOT_FOUND = "not_found"
    REQUIRED_FIELD_MISSING = "required_field_missing"
    UNKNOWN_TRANSFORM = "unknown_transform"
    UNSUPPORTED_ENTITY_TYPE = "unsupported_entity_type"
    VALIDATION_FAILURE = "validation_failure"
    INVALID_PAYLOAD = "invalid_payload"
    STORE_ERROR = "store_error"
    UNEXPECTED = "unexpected"


class PipelineError(Exception):
    """
    Base class for categorized pipeline failures.
    """

    kind: str = ErrorKind.UNEXPECTED

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})


class RecordNotFoundError(PipelineError):
    """Raised when a raw record does not exist or belongs to another tenant."""

    kind = ErrorKind.NOT_FOUND


class RequiredFieldMissingError(PipelineError):
    """Raised when a required mapping resolves to nothing and has no default."""

    kind = ErrorKind.REQUIRED_FIELD_MISSING


class UnknownTransformError(PipelineError):
    """Raised when a mapping names a transform function that is not registered."""

    kind = ErrorKind.UNKNOWN_TRANSFORM


class UnsupportedEntityTypeError(PipelineError):
    """Raised when no transformer is registered for a record's entity type."""

    kind = ErrorKind.UNSUPPORTED_ENTITY_TYPE


class TransformValidationError(PipelineError):
    """Raised when a value or an assembled record fails format checks."""

    kind = ErrorKind.VALIDATION_FAILURE


class InvalidJobPayloadError(PipelineError):
    """Raised when a queued job payload does not match its queue's schema."""

    kind = ErrorKind.INVALID_PAYLOAD


class StoreError(PipelineError):
    """Raised by the unit of work when the data store rejects a read or write."""

    kind = ErrorKind.STORE_ERROR


def classify_error(exc: BaseException) -> str:
    """
    Return the error kind recorded for an exception caught at a job boundary.
    """

    if isinstance(exc, PipelineError):
        return exc.kind
    if isinstance(exc, SQLAlchemyError):
        return ErrorKind.STORE_ERROR
    return ErrorKind.UNEXPECTED


def error_message(exc: BaseException) -> str:
    if isinstance(exc, PipelineError):
        return exc.message
    return str(exc) or exc.__class__.__name__
