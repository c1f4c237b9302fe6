"""
leadflow/queue/postgres.py

JobQueue backed by the ``pipeline_jobs`` table.

Every call runs in its own short transaction so a claimed job is visible as
``active`` to other processes before its handler starts.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from db.models.pipeline_job import PipelineJobState
from db.repositories.pipeline_job_repository import PipelineJobRepository
from leadflow.config import WorkerSettings, get_worker_settings
from leadflow.logging_utils import log_event
from leadflow.queue.base import ClaimedJob, QueueCounts, StalledJobs

logger = logging.getLogger(__name__)


class PostgresJobQueue:
    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        settings: WorkerSettings | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory
        self._settings = settings or get_worker_settings()

    def enqueue(
        self,
        queue_name: str,
        payload: dict[str, Any],
        *,
        max_attempts: int | None = None,
    ) -> uuid.UUID:
        attempts = max_attempts or self._settings.for_queue(queue_name).max_attempts
        with self._session_factory() as db:
            with db.begin():
                job = PipelineJobRepository(db).create_job(
                    queue_name=queue_name,
                    payload=payload,
                    max_attempts=attempts,
                )
                job_id = job.id
        log_event(logger, logging.DEBUG, "job_enqueued", queue=queue_name, job_id=str(job_id))
        return job_id

    def claim(self, queue_name: str) -> ClaimedJob | None:
        with self._session_factory() as db:
            with db.begin():
                job = PipelineJobRepository(db).claim_next(queue_name=queue_name)
                if job is None:
                    return None
                return ClaimedJob(
                    id=job.id,
                    queue_name=job.queue_name,
                    payload=dict(job.payload),
                    attempts_made=job.attempts_made,
                    max_attempts=job.max_attempts,
                )

    def complete(self, job_id: uuid.UUID, *, attempt: int) -> bool:
        with self._session_factory() as db:
            with db.begin():
                job = PipelineJobRepository(db).mark_completed(job_id=job_id, attempt=attempt)
                return job is not None

    def fail(
        self,
        job_id: uuid.UUID,
        *,
        attempt: int,
        error_message: str,
        backoff_seconds: float = 0.0,
    ) -> str | None:
        with self._session_factory() as db:
            with db.begin():
                job = PipelineJobRepository(db).mark_failed(
                    job_id=job_id,
                    attempt=attempt,
                    error_message=error_message,
                    backoff_seconds=backoff_seconds,
                )
                return None if job is None else job.state

    def renew_lock(self, job_id: uuid.UUID, *, attempt: int) -> bool:
        with self._session_factory() as db:
            with db.begin():
                return PipelineJobRepository(db).renew_lock(job_id=job_id, attempt=attempt)

    def counts(self, queue_name: str) -> QueueCounts:
        with self._session_factory() as db:
            by_state = PipelineJobRepository(db).count_by_state(queue_name=queue_name)
        return QueueCounts(
            waiting=by_state[PipelineJobState.WAITING],
            active=by_state[PipelineJobState.ACTIVE],
            completed=by_state[PipelineJobState.COMPLETED],
            failed=by_state[PipelineJobState.FAILED],
        )

    def prune(self, queue_name: str, *, keep_completed: int, keep_failed: int) -> int:
        with self._session_factory() as db:
            with db.begin():
                repository = PipelineJobRepository(db)
                removed = repository.prune(
                    queue_name=queue_name,
                    state=PipelineJobState.COMPLETED,
                    keep=keep_completed,
                )
                removed += repository.prune(
                    queue_name=queue_name,
                    state=PipelineJobState.FAILED,
                    keep=keep_failed,
                )
        return removed

    def requeue_stalled(
        self,
        queue_name: str,
        *,
        stalled_before: datetime,
        max_stalled_count: int,
    ) -> StalledJobs:
        with self._session_factory() as db:
            with db.begin():
                requeued, failed = PipelineJobRepository(db).requeue_stalled(
                    queue_name=queue_name,
                    stalled_before=stalled_before,
                    max_stalled_count=max_stalled_count,
                )
        return StalledJobs(requeued=requeued, failed=failed)
