"""
leadflow/workers/runner.py

Worker process: one WorkerPool per queue plus the maintenance scheduler.

Shutdown order on SIGTERM/SIGINT: every pool stops claiming, then every
pool drains its in-flight handlers, then the maintenance scheduler stops and
the connection pool is released.
"""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType

from apscheduler.schedulers.background import BackgroundScheduler

from leadflow.config import (
    MaintenanceSettings,
    QueueName,
    WorkerSettings,
    get_maintenance_settings,
    get_worker_settings,
    load_transformer_configs_enabled,
)
from leadflow.logging_utils import log_event
from leadflow.queue.base import JobQueue
from leadflow.registry.transformer_registry import TransformerRegistry
from leadflow.workers.campaign_worker import CampaignWorker
from leadflow.workers.fingerprint_worker import FingerprintWorker
from leadflow.workers.maintenance import build_maintenance_scheduler
from leadflow.workers.pool import JobHandler, WorkerPool
from leadflow.workers.transform_worker import TransformWorker

logger = logging.getLogger(__name__)


def build_handlers(registry: TransformerRegistry) -> dict[str, JobHandler]:
    return {
        QueueName.TRANSFORM: TransformWorker(registry=registry),
        QueueName.FINGERPRINT: FingerprintWorker(),
        QueueName.CAMPAIGN: CampaignWorker(),
    }


class WorkerRunner:
    def __init__(
        self,
        *,
        queue: JobQueue,
        handlers: dict[str, JobHandler],
        worker_settings: WorkerSettings | None = None,
        maintenance_settings: MaintenanceSettings | None = None,
    ) -> None:
        self._queue = queue
        self._settings = worker_settings or get_worker_settings()
        self._maintenance_settings = maintenance_settings or get_maintenance_settings()
        self._pools = [
            WorkerPool(
                queue=queue,
                settings=queue_settings,
                handler=handlers[queue_settings.name],
                poll_interval_seconds=self._settings.poll_interval_seconds,
                lock_renew_interval_seconds=self._settings.lock_renew_interval_seconds,
            )
            for queue_settings in self._settings.queues()
            if queue_settings.name in handlers
        ]
        self._scheduler: BackgroundScheduler | None = None
        self._stopped = threading.Event()

    @property
    def pools(self) -> list[WorkerPool]:
        return list(self._pools)

    def start(self) -> None:
        for pool in self._pools:
            pool.start()
        if self._maintenance_settings.enabled:
            self._scheduler = build_maintenance_scheduler(
                queue=self._queue,
                worker_settings=self._settings,
                maintenance_settings=self._maintenance_settings,
            )
            self._scheduler.start()
        log_event(
            logger,
            logging.INFO,
            "workers_started",
            queues={pool.queue_name: pool.concurrency for pool in self._pools},
        )

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        # No pool may claim new work while another one drains.
        for pool in self._pools:
            pool.request_stop()
        for pool in self._pools:
            pool.wait()
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
        log_event(logger, logging.INFO, "workers_stopped")


def run_worker_process() -> None:
    """
    Entry point for ``python -m leadflow.workers``.
    """

    from db.session import dispose_engine
    from leadflow.logging_utils import configure_logging
    from leadflow.queue.postgres import PostgresJobQueue
    from leadflow.registry.loader import load_registry_configs
    from leadflow.transformers.lead_transformer import build_default_registry

    configure_logging()

    registry = build_default_registry()
    if load_transformer_configs_enabled():
        load_registry_configs(registry)

    runner = WorkerRunner(queue=PostgresJobQueue(), handlers=build_handlers(registry))
    shutdown_requested = threading.Event()

    def _request_shutdown(signum: int, frame: FrameType | None) -> None:
        logger.info("Received signal %s, shutting down workers", signal.Signals(signum).name)
        shutdown_requested.set()

    signal.signal(signal.SIGTERM, _request_shutdown)
    signal.signal(signal.SIGINT, _request_shutdown)

    runner.start()
    try:
        while not shutdown_requested.wait(timeout=1.0):
            pass
    finally:
        runner.stop()
        dispose_engine()
        logger.info("Worker process exited cleanly")
