"""
tests/test_runner.py

Worker process shutdown across several queue pools.
"""

from __future__ import annotations

import threading
import time

from fakes import InMemoryJobQueue
from leadflow.config import MaintenanceSettings, QueueName, QueueSettings, WorkerSettings
from leadflow.workers.runner import WorkerRunner

WAIT_SECONDS = 5.0


def _wait_until(predicate, timeout: float = WAIT_SECONDS) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _worker_settings() -> WorkerSettings:
    return WorkerSettings(
        poll_interval_seconds=0.01,
        transform=QueueSettings(name=QueueName.TRANSFORM, concurrency=1),
        fingerprint=QueueSettings(name=QueueName.FINGERPRINT, concurrency=1),
        campaign=QueueSettings(name=QueueName.CAMPAIGN, concurrency=1),
        lock_renew_interval_seconds=60.0,
    )


def test_no_queue_claims_jobs_while_another_drains() -> None:
    queue = InMemoryJobQueue()
    started = threading.Event()
    release = threading.Event()
    campaigns: list[dict] = []

    def transform(payload: dict) -> None:
        started.set()
        release.wait(WAIT_SECONDS)

    runner = WorkerRunner(
        queue=queue,
        handlers={QueueName.TRANSFORM: transform, QueueName.CAMPAIGN: campaigns.append},
        worker_settings=_worker_settings(),
        maintenance_settings=MaintenanceSettings(enabled=False),
    )
    queue.enqueue(QueueName.TRANSFORM, {"record_id": "r1"})
    runner.start()
    assert started.wait(WAIT_SECONDS)

    stopper = threading.Thread(target=runner.stop)
    stopper.start()
    try:
        assert _wait_until(lambda: not any(pool.running for pool in runner.pools))
        queue.enqueue(QueueName.CAMPAIGN, {"campaign_id": "c1"})
        time.sleep(0.1)
        assert stopper.is_alive()
    finally:
        release.set()
        stopper.join(WAIT_SECONDS)

    assert not stopper.is_alive()
    assert campaigns == []
    assert queue.counts(QueueName.CAMPAIGN).waiting == 1
    assert queue.counts(QueueName.TRANSFORM).completed == 1


def test_stop_is_idempotent() -> None:
    runner = WorkerRunner(
        queue=InMemoryJobQueue(),
        handlers={QueueName.CAMPAIGN: lambda payload: None},
        worker_settings=_worker_settings(),
        maintenance_settings=MaintenanceSettings(enabled=False),
    )
    runner.start()

    runner.stop()
    runner.stop()

    assert [pool.queue_name for pool in runner.pools] == [QueueName.CAMPAIGN]
    assert not any(pool.running for pool in runner.pools)
