"""
Queue gateway for re-submitting jobs to RQ.

Jobs are addressed by their importable dotted path so the retry runs the
same (wrapped) callable the worker ran originally.
"""

import logging
from datetime import timedelta
from typing import Any, Protocol, Sequence

from redis import Redis
from rq import Queue

logger = logging.getLogger(__name__)


class QueueGateway(Protocol):
    def enqueue_now(self, queue: str, job_name: str, args: Sequence[Any]) -> Any:
        ...

    def enqueue_after(
        self, queue: str, delay_seconds: int, job_name: str, args: Sequence[Any]
    ) -> Any:
        ...


class RQQueueGateway:
    def __init__(self, redis_conn: Redis):
        self.redis = redis_conn

    def _queue(self, name: str) -> Queue:
        return Queue(name, connection=self.redis)

    def enqueue_now(self, queue: str, job_name: str, args: Sequence[Any]):
        job = self._queue(queue).enqueue(job_name, *args)
        logger.debug(f"Enqueued {job_name} on {queue} as job {job.id}")
        return job

    def enqueue_after(self, queue: str, delay_seconds: int, job_name: str, args: Sequence[Any]):
        # Needs a worker running with the scheduler enabled to fire.
        job = self._queue(queue).enqueue_in(timedelta(seconds=delay_seconds), job_name, *args)
        logger.debug(f"Scheduled {job_name} on {queue} in {delay_seconds}s as job {job.id}")
        return job
