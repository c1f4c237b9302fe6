"""
Durable named job queues.
"""

from leadflow.config import QueueName
from leadflow.queue.base import ClaimedJob, JobQueue, QueueCounts

__all__ = ["ClaimedJob", "JobQueue", "QueueCounts", "QueueName"]
