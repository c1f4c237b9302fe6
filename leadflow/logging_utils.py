"""
Logging setup and structured event helpers for workers and the API.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(threadName)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once per process from LOG_LEVEL.
    """

    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).strip().upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format=_DEFAULT_FORMAT,
    )


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
