"""
leadflow/config.py

Environment-driven runtime settings for queues, workers and maintenance.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


class QueueName:
    TRANSFORM = "data-transformation"
    FINGERPRINT = "schema-fingerprint"
    CAMPAIGN = "campaign-execution"


@dataclass(frozen=True)
class QueueSettings:
    """
    Per-queue concurrency, retry and retention settings.
    """

    name: str
    concurrency: int
    max_attempts: int = 1
    backoff_seconds: float = 5.0
    keep_completed: int = 1000
    keep_failed: int = 5000


@dataclass(frozen=True)
class WorkerSettings:
    """
    Worker process settings: one QueueSettings per named queue.
    """

    poll_interval_seconds: float
    transform: QueueSettings
    fingerprint: QueueSettings
    campaign: QueueSettings
    lock_renew_interval_seconds: float = 60.0

    def queues(self) -> tuple[QueueSettings, ...]:
        return (self.transform, self.fingerprint, self.campaign)

    def for_queue(self, name: str) -> QueueSettings:
        for queue in self.queues():
            if queue.name == name:
                return queue
        raise KeyError(f"Unknown queue: {name}")


@dataclass(frozen=True)
class MaintenanceSettings:
    """
    Periodic queue housekeeping run inside the worker process.
    """

    enabled: bool = True
    prune_interval_seconds: int = 300
    stalled_check_interval_seconds: int = 60
    stalled_after_seconds: int = 900
    max_stalled_count: int = 1


def _queue_settings(
    *,
    name: str,
    env_prefix: str,
    concurrency: int,
    keep_completed: int,
    keep_failed: int,
) -> QueueSettings:
    return QueueSettings(
        name=name,
        concurrency=max(1, _get_int_env(f"{env_prefix}_CONCURRENCY", concurrency)),
        max_attempts=max(1, _get_int_env(f"{env_prefix}_MAX_ATTEMPTS", 1)),
        backoff_seconds=max(0.0, _get_float_env(f"{env_prefix}_BACKOFF_SECONDS", 5.0)),
        keep_completed=max(0, _get_int_env(f"{env_prefix}_KEEP_COMPLETED", keep_completed)),
        keep_failed=max(0, _get_int_env(f"{env_prefix}_KEEP_FAILED", keep_failed)),
    )


@lru_cache(maxsize=1)
def get_worker_settings() -> WorkerSettings:
    """
    Return cached worker settings from environment variables.
    """

    return WorkerSettings(
        poll_interval_seconds=max(0.05, _get_float_env("WORKER_POLL_INTERVAL_SECONDS", 1.0)),
        lock_renew_interval_seconds=max(1.0, _get_float_env("WORKER_LOCK_RENEW_SECONDS", 60.0)),
        transform=_queue_settings(
            name=QueueName.TRANSFORM,
            env_prefix="TRANSFORM_QUEUE",
            concurrency=5,
            keep_completed=1000,
            keep_failed=5000,
        ),
        fingerprint=_queue_settings(
            name=QueueName.FINGERPRINT,
            env_prefix="FINGERPRINT_QUEUE",
            concurrency=3,
            keep_completed=500,
            keep_failed=1000,
        ),
        campaign=_queue_settings(
            name=QueueName.CAMPAIGN,
            env_prefix="CAMPAIGN_QUEUE",
            concurrency=3,
            keep_completed=1000,
            keep_failed=5000,
        ),
    )


@lru_cache(maxsize=1)
def get_maintenance_settings() -> MaintenanceSettings:
    """
    Return cached queue maintenance settings.
    """

    return MaintenanceSettings(
        enabled=_get_bool_env("QUEUE_MAINTENANCE_ENABLED", True),
        prune_interval_seconds=max(10, _get_int_env("QUEUE_PRUNE_INTERVAL_SECONDS", 300)),
        stalled_check_interval_seconds=max(
            5, _get_int_env("QUEUE_STALLED_CHECK_INTERVAL_SECONDS", 60)
        ),
        stalled_after_seconds=max(30, _get_int_env("QUEUE_STALLED_AFTER_SECONDS", 900)),
        max_stalled_count=max(0, _get_int_env("QUEUE_MAX_STALLED_COUNT", 1)),
    )


@lru_cache(maxsize=1)
def load_transformer_configs_enabled() -> bool:
    """
    Whether workers hydrate the registry from the transformer_configs table.
    """

    return _get_bool_env("LOAD_TRANSFORMER_CONFIGS", True)
