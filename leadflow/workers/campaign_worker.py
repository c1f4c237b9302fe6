"""
Handler for the ``campaign-execution`` queue.

Message dispatch lives outside this service; the handler only validates
and acknowledges the job.
"""

from __future__ import annotations

import logging
from typing import Any

from leadflow.logging_utils import log_event
from leadflow.workers.payloads import CampaignJobPayload

logger = logging.getLogger(__name__)


class CampaignWorker:
    def __call__(self, payload: dict[str, Any]) -> CampaignJobPayload:
        job = CampaignJobPayload.parse(payload)
        log_event(
            logger,
            logging.INFO,
            "campaign_job_received",
            campaign_id=str(job.campaign_id),
            tenant_id=str(job.tenant_id),
            lead_count=len(job.lead_ids),
            message_id=str(job.message_id) if job.message_id else None,
        )
        return job
