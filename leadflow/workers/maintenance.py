"""
leadflow/workers/maintenance.py

Periodic queue housekeeping run inside the worker process:

  prune_jobs       keep only the newest completed/failed jobs per queue
  requeue_stalled  return jobs whose worker disappeared to ``waiting``, or
                   fail them once they stalled too often

Call ``build_maintenance_scheduler()`` once, start it after the pools and
shut it down with ``wait=True`` before disposing the engine.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from leadflow.config import MaintenanceSettings, WorkerSettings
from leadflow.logging_utils import log_event
from leadflow.queue.base import JobQueue, StalledJobs

logger = logging.getLogger(__name__)


def prune_jobs(queue: JobQueue, settings: WorkerSettings) -> int:
    removed_total = 0
    for queue_settings in settings.queues():
        try:
            removed = queue.prune(
                queue_settings.name,
                keep_completed=queue_settings.keep_completed,
                keep_failed=queue_settings.keep_failed,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Maintenance: prune failed queue=%s: %s", queue_settings.name, exc)
            continue
        removed_total += removed
        if removed:
            log_event(logger, logging.INFO, "jobs_pruned", queue=queue_settings.name, removed=removed)
    return removed_total


def requeue_stalled_jobs(
    queue: JobQueue,
    settings: WorkerSettings,
    stalled_after_seconds: int,
    max_stalled_count: int = 1,
) -> StalledJobs:
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=stalled_after_seconds)
    total = StalledJobs()
    for queue_settings in settings.queues():
        try:
            stalled = queue.requeue_stalled(
                queue_settings.name,
                stalled_before=cutoff,
                max_stalled_count=max_stalled_count,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Maintenance: stalled check failed queue=%s: %s", queue_settings.name, exc
            )
            continue
        total += stalled
        if stalled.requeued or stalled.failed:
            log_event(
                logger,
                logging.WARNING,
                "stalled_jobs_handled",
                queue=queue_settings.name,
                requeued=stalled.requeued,
                failed=stalled.failed,
            )
    return total


def build_maintenance_scheduler(
    *,
    queue: JobQueue,
    worker_settings: WorkerSettings,
    maintenance_settings: MaintenanceSettings,
) -> BackgroundScheduler:
    """
    Return a configured but not yet started scheduler.
    """

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        prune_jobs,
        trigger="interval",
        seconds=maintenance_settings.prune_interval_seconds,
        args=(queue, worker_settings),
        id="prune_jobs",
        name="Prune finished queue jobs",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        requeue_stalled_jobs,
        trigger="interval",
        seconds=maintenance_settings.stalled_check_interval_seconds,
        args=(
            queue,
            worker_settings,
            maintenance_settings.stalled_after_seconds,
            maintenance_settings.max_stalled_count,
        ),
        id="requeue_stalled",
        name="Requeue stalled queue jobs",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return scheduler
