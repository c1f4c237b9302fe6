"""
leadflow/queue/base.py

Queue contract consumed by the worker pools and the pipeline service.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class ClaimedJob:
    """
    A job handed to exactly one worker.
    """

    id: uuid.UUID
    queue_name: str
    payload: dict[str, Any]
    attempts_made: int
    max_attempts: int


@dataclass(frozen=True)
class QueueCounts:
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def depth(self) -> int:
        """Jobs not yet finished: waiting plus active."""
        return self.waiting + self.active


@dataclass(frozen=True)
class StalledJobs:
    """
    Outcome of one stalled-job sweep over a queue.
    """

    requeued: int = 0
    failed: int = 0

    def __add__(self, other: StalledJobs) -> StalledJobs:
        return StalledJobs(
            requeued=self.requeued + other.requeued,
            failed=self.failed + other.failed,
        )


class JobQueue(Protocol):
    def enqueue(
        self,
        queue_name: str,
        payload: dict[str, Any],
        *,
        max_attempts: int | None = None,
    ) -> uuid.UUID: ...

    def claim(self, queue_name: str) -> ClaimedJob | None: ...

    # ``attempt`` is the ClaimedJob.attempts_made the worker was handed. A
    # job that was requeued and claimed again no longer matches it, so the
    # calls below report False or None instead of touching the new claim.

    def complete(self, job_id: uuid.UUID, *, attempt: int) -> bool: ...

    def fail(
        self,
        job_id: uuid.UUID,
        *,
        attempt: int,
        error_message: str,
        backoff_seconds: float = 0.0,
    ) -> str | None:
        """
        Record a failed attempt. Returns the new job state, ``waiting`` when
        the job will be retried or ``failed`` when it is out of attempts.
        """
        ...

    def renew_lock(self, job_id: uuid.UUID, *, attempt: int) -> bool: ...

    def counts(self, queue_name: str) -> QueueCounts: ...

    def prune(self, queue_name: str, *, keep_completed: int, keep_failed: int) -> int: ...

    def requeue_stalled(
        self,
        queue_name: str,
        *,
        stalled_before: datetime,
        max_stalled_count: int,
    ) -> StalledJobs: ...
