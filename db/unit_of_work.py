"""
db/unit_of_work.py

Transaction boundary shared by the pipeline services.

A unit of work opens one session, exposes the repositories bound to it,
commits when the block exits cleanly and rolls back when it raises.
"""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.repositories.lead_repository import LeadRepository
from db.repositories.raw_record_repository import RawRecordRepository
from db.repositories.schema_fingerprint_repository import SchemaFingerprintRepository
from db.repositories.transformer_config_repository import TransformerConfigRepository
from leadflow.errors import StoreError


class PipelineUnitOfWork(Protocol):
    raw_records: RawRecordRepository
    leads: LeadRepository
    fingerprints: SchemaFingerprintRepository
    transformer_configs: TransformerConfigRepository

    def __enter__(self) -> PipelineUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


UnitOfWorkFactory = Callable[[], PipelineUnitOfWork]


class SqlAlchemyUnitOfWork:
    """
    Store failures surface as StoreError; the SQLAlchemy error stays
    attached as ``__cause__``.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory
        self.session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.session = self._session_factory()
        self.raw_records = RawRecordRepository(self.session)
        self.leads = LeadRepository(self.session)
        self.fingerprints = SchemaFingerprintRepository(self.session)
        self.transformer_configs = TransformerConfigRepository(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc is not None:
                self.rollback()
                if isinstance(exc, SQLAlchemyError):
                    raise StoreError(
                        f"Store operation failed: {exc.__class__.__name__}",
                        context={"error": str(exc)},
                    ) from exc
            else:
                self.commit()
        finally:
            if self.session is not None:
                self.session.close()
            self.session = None

    def commit(self) -> None:
        session = self._require_session()
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(
                f"Commit failed: {exc.__class__.__name__}",
                context={"error": str(exc)},
            ) from exc

    def rollback(self) -> None:
        self._require_session().rollback()

    def _require_session(self) -> Session:
        if self.session is None:
            raise RuntimeError("Unit of work is not active; use it as a context manager.")
        return self.session
