"""
Repository for durable queue jobs: enqueue, claim, completion and retention.

A claim is identified by the job id together with ``attempts_made`` at claim
time. Completion, failure and lock renewal only apply while the job is still
``active`` under that same claim.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from db.models.pipeline_job import PipelineJob, PipelineJobState

STALLED_REQUEUED_MESSAGE = "Job stalled and was returned to the queue."
STALLED_FAILED_MESSAGE = "Job stalled more than the allowed limit."


class PipelineJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        queue_name: str,
        payload: dict[str, Any],
        max_attempts: int = 1,
    ) -> PipelineJob:
        job = PipelineJob(
            id=uuid.uuid4(),
            queue_name=queue_name,
            state=PipelineJobState.WAITING,
            payload=payload,
            attempts_made=0,
            max_attempts=max(1, max_attempts),
            stalled_count=0,
        )
        self._session.add(job)
        self._session.flush()
        return job

    def claim_next(self, *, queue_name: str) -> PipelineJob | None:
        """
        Lock the oldest available waiting job and mark it active.

        SKIP LOCKED lets several worker processes poll the same queue without
        handing one job to two of them.
        """

        stmt = (
            select(PipelineJob)
            .where(
                PipelineJob.queue_name == queue_name,
                PipelineJob.state == PipelineJobState.WAITING,
                PipelineJob.available_at <= func.now(),
            )
            .order_by(PipelineJob.available_at, PipelineJob.created_at)
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        job = self._session.scalars(stmt).first()
        if job is None:
            return None

        job.state = PipelineJobState.ACTIVE
        job.locked_at = datetime.now(timezone.utc)
        job.attempts_made += 1
        return job

    def get_claimed(self, *, job_id: uuid.UUID, attempt: int) -> PipelineJob | None:
        stmt = (
            select(PipelineJob)
            .where(
                PipelineJob.id == job_id,
                PipelineJob.state == PipelineJobState.ACTIVE,
                PipelineJob.attempts_made == attempt,
            )
            .with_for_update()
        )
        return self._session.scalars(stmt).first()

    def mark_completed(self, *, job_id: uuid.UUID, attempt: int) -> PipelineJob | None:
        job = self.get_claimed(job_id=job_id, attempt=attempt)
        if job is None:
            return None
        job.state = PipelineJobState.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        job.locked_at = None
        job.last_error = None
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        attempt: int,
        error_message: str,
        backoff_seconds: float = 0.0,
    ) -> PipelineJob | None:
        """
        Schedule a retry with exponential backoff, or fail the job for good
        once ``max_attempts`` is used up.
        """

        job = self.get_claimed(job_id=job_id, attempt=attempt)
        if job is None:
            return None

        now = datetime.now(timezone.utc)
        job.last_error = error_message
        job.locked_at = None
        if job.attempts_made < job.max_attempts:
            delay = backoff_seconds * (2 ** max(0, job.attempts_made - 1))
            job.state = PipelineJobState.WAITING
            job.available_at = now + timedelta(seconds=delay)
        else:
            job.state = PipelineJobState.FAILED
            job.completed_at = now
        return job

    def renew_lock(self, *, job_id: uuid.UUID, attempt: int) -> bool:
        result = self._session.execute(
            update(PipelineJob)
            .where(
                PipelineJob.id == job_id,
                PipelineJob.state == PipelineJobState.ACTIVE,
                PipelineJob.attempts_made == attempt,
            )
            .values(locked_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def count_by_state(self, *, queue_name: str) -> dict[str, int]:
        stmt = (
            select(PipelineJob.state, func.count())
            .where(PipelineJob.queue_name == queue_name)
            .group_by(PipelineJob.state)
        )
        counts = {
            PipelineJobState.WAITING: 0,
            PipelineJobState.ACTIVE: 0,
            PipelineJobState.COMPLETED: 0,
            PipelineJobState.FAILED: 0,
        }
        for state, count in self._session.execute(stmt).all():
            counts[state] = int(count)
        return counts

    def prune(self, *, queue_name: str, state: str, keep: int) -> int:
        """
        Delete finished jobs in ``state`` beyond the newest ``keep``.
        """

        overflow = (
            select(PipelineJob.id)
            .where(PipelineJob.queue_name == queue_name, PipelineJob.state == state)
            .order_by(PipelineJob.completed_at.desc().nulls_last(), PipelineJob.created_at.desc())
            .offset(max(0, keep))
            .scalar_subquery()
        )
        result = self._session.execute(
            delete(PipelineJob)
            .where(PipelineJob.id.in_(overflow))
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def requeue_stalled(
        self,
        *,
        queue_name: str,
        stalled_before: datetime,
        max_stalled_count: int,
    ) -> tuple[int, int]:
        """
        Handle active jobs whose lock predates ``stalled_before``.

        A job that already stalled ``max_stalled_count`` times is failed;
        the rest go back to waiting with their stall count raised by one.
        Returns ``(requeued, failed)``.
        """

        stalled = (
            PipelineJob.queue_name == queue_name,
            PipelineJob.state == PipelineJobState.ACTIVE,
            PipelineJob.locked_at < stalled_before,
        )
        failed = self._session.execute(
            update(PipelineJob)
            .where(*stalled, PipelineJob.stalled_count >= max_stalled_count)
            .values(
                state=PipelineJobState.FAILED,
                locked_at=None,
                completed_at=func.now(),
                last_error=STALLED_FAILED_MESSAGE,
            )
            .execution_options(synchronize_session=False)
        )
        requeued = self._session.execute(
            update(PipelineJob)
            .where(*stalled)
            .values(
                state=PipelineJobState.WAITING,
                locked_at=None,
                available_at=func.now(),
                stalled_count=PipelineJob.stalled_count + 1,
                last_error=STALLED_REQUEUED_MESSAGE,
            )
            .execution_options(synchronize_session=False)
        )
        return int(requeued.rowcount or 0), int(failed.rowcount or 0)
