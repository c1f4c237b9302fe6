"""
leadflow/workers/pool.py

Bounded-concurrency consumer for one named queue.

A dispatcher thread claims a job only after it has reserved a free slot,
then hands the job to a thread pool sized to the queue's concurrency. Each
pool owns its own slots, so queues never share a bound.

While handlers run, a heartbeat thread renews the lock of every in-flight
job so the stalled-job sweep only sees jobs whose worker is gone.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from db.models.pipeline_job import PipelineJobState
from leadflow.config import QueueSettings
from leadflow.errors import classify_error, error_message
from leadflow.logging_utils import log_event
from leadflow.queue.base import ClaimedJob, JobQueue

logger = logging.getLogger(__name__)

JobHandler = Callable[[dict[str, Any]], Any]


class WorkerPool:
    def __init__(
        self,
        *,
        queue: JobQueue,
        settings: QueueSettings,
        handler: JobHandler,
        poll_interval_seconds: float = 1.0,
        lock_renew_interval_seconds: float | None = None,
    ) -> None:
        self._queue = queue
        self._settings = settings
        self._handler = handler
        self._poll_interval = poll_interval_seconds
        self._lock_renew_interval = lock_renew_interval_seconds
        self._slots = threading.BoundedSemaphore(settings.concurrency)
        self._stop_event = threading.Event()
        self._heartbeat_stop = threading.Event()
        self._executor: ThreadPoolExecutor | None = None
        self._dispatcher: threading.Thread | None = None
        self._heartbeat: threading.Thread | None = None
        self._in_flight: dict[uuid.UUID, int] = {}
        self._in_flight_lock = threading.Lock()

    @property
    def queue_name(self) -> str:
        return self._settings.name

    @property
    def concurrency(self) -> int:
        return self._settings.concurrency

    @property
    def running(self) -> bool:
        """True while the dispatcher may still claim jobs."""
        return self._dispatcher is not None and self._dispatcher.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._heartbeat_stop.clear()
        self._executor = ThreadPoolExecutor(
            max_workers=self._settings.concurrency,
            thread_name_prefix=f"{self.queue_name}-worker",
        )
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop,
            args=(self._executor,),
            name=f"{self.queue_name}-dispatcher",
            daemon=True,
        )
        self._dispatcher.start()
        if self._lock_renew_interval:
            self._heartbeat = threading.Thread(
                target=self._heartbeat_loop,
                name=f"{self.queue_name}-heartbeat",
                daemon=True,
            )
            self._heartbeat.start()
        log_event(
            logger,
            logging.INFO,
            "worker_pool_started",
            queue=self.queue_name,
            concurrency=self.concurrency,
        )

    def request_stop(self) -> None:
        """
        Stop claiming jobs. Returns once the dispatcher has exited; handlers
        already running keep going until ``wait()``.
        """

        self._stop_event.set()
        if self._dispatcher is not None:
            self._dispatcher.join()
            self._dispatcher = None

    def wait(self) -> None:
        """
        Block until every in-flight handler has finished. Handlers are never
        interrupted. Call after ``request_stop()``.
        """

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._heartbeat_stop.set()
        if self._heartbeat is not None:
            self._heartbeat.join()
            self._heartbeat = None
        log_event(logger, logging.INFO, "worker_pool_stopped", queue=self.queue_name)

    def stop(self) -> None:
        self.request_stop()
        self.wait()

    def process_next(self) -> bool:
        """
        Claim and run one job on the calling thread. Returns False when the
        queue had nothing available.
        """

        job = self._queue.claim(self.queue_name)
        if job is None:
            return False
        self._run_job(job)
        return True

    def renew_locks(self) -> int:
        """
        Refresh the lock of every in-flight job. Returns how many were renewed.
        """

        with self._in_flight_lock:
            claims = list(self._in_flight.items())
        renewed = 0
        for job_id, attempt in claims:
            if self._queue.renew_lock(job_id, attempt=attempt):
                renewed += 1
                continue
            log_event(
                logger,
                logging.WARNING,
                "job_lock_lost",
                queue=self.queue_name,
                job_id=str(job_id),
                attempt=attempt,
            )
        return renewed

    def _dispatch_loop(self, executor: ThreadPoolExecutor) -> None:
        while not self._stop_event.is_set():
            if not self._slots.acquire(timeout=self._poll_interval):
                continue
            try:
                job = self._queue.claim(self.queue_name)
            except Exception:
                self._slots.release()
                logger.exception("Failed to claim job from queue %s", self.queue_name)
                self._stop_event.wait(self._poll_interval)
                continue

            if job is None:
                self._slots.release()
                self._stop_event.wait(self._poll_interval)
                continue

            future = executor.submit(self._run_job, job)
            future.add_done_callback(self._on_job_done)

    def _heartbeat_loop(self) -> None:
        while not self._heartbeat_stop.wait(self._lock_renew_interval):
            try:
                self.renew_locks()
            except Exception:
                logger.exception("Failed to renew job locks on queue %s", self.queue_name)

    def _on_job_done(self, future: Future[None]) -> None:
        self._slots.release()
        exc = future.exception()
        if exc is not None:
            logger.error("Job bookkeeping failed on queue %s", self.queue_name, exc_info=exc)

    def _run_job(self, job: ClaimedJob) -> None:
        with self._in_flight_lock:
            self._in_flight[job.id] = job.attempts_made
        try:
            self._execute(job)
        finally:
            with self._in_flight_lock:
                self._in_flight.pop(job.id, None)

    def _execute(self, job: ClaimedJob) -> None:
        log_event(
            logger,
            logging.DEBUG,
            "job_started",
            queue=self.queue_name,
            job_id=str(job.id),
            attempt=job.attempts_made,
        )
        try:
            self._handler(job.payload)
        except Exception as exc:
            # Job boundary: the failure is persisted on the job and logged.
            state = self._queue.fail(
                job.id,
                attempt=job.attempts_made,
                error_message=error_message(exc),
                backoff_seconds=self._settings.backoff_seconds,
            )
            if state is None:
                self._log_claim_lost(job)
                return
            log_event(
                logger,
                logging.ERROR,
                "job_failed",
                queue=self.queue_name,
                job_id=str(job.id),
                attempt=job.attempts_made,
                max_attempts=job.max_attempts,
                will_retry=state == PipelineJobState.WAITING,
                error_kind=classify_error(exc),
                error=error_message(exc),
            )
            return

        if not self._queue.complete(job.id, attempt=job.attempts_made):
            self._log_claim_lost(job)
            return
        log_event(
            logger,
            logging.INFO,
            "job_completed",
            queue=self.queue_name,
            job_id=str(job.id),
            attempt=job.attempts_made,
        )

    def _log_claim_lost(self, job: ClaimedJob) -> None:
        log_event(
            logger,
            logging.WARNING,
            "job_claim_lost",
            queue=self.queue_name,
            job_id=str(job.id),
            attempt=job.attempts_made,
        )
