"""
RQ integration for retryable jobs.

Decorate a job function taking ``(queue, *args)``; enqueue the decorated
function as usual. Each run goes through a RetryOrchestrator, and retries
are re-enqueued under the decorated function's dotted path.
"""

import functools
import logging
from typing import Any, Callable, Iterable, Optional

from redis import Redis
from rq import get_current_job

from rq_backoff.core.config import settings
from rq_backoff.core.redis_client import get_redis_connection
from rq_backoff.job_safety.attempt_counter import AttemptCounter
from rq_backoff.job_safety.backoff_schedule import BackoffSchedule
from rq_backoff.job_safety.retry_orchestrator import RetryOrchestrator
from rq_backoff.services.queue_gateway import RQQueueGateway

logger = logging.getLogger(__name__)


def build_orchestrator(
    job_name: str,
    func: Callable[..., Any],
    redis_conn: Redis,
    schedule: Optional[Iterable[int]] = None,
    suppress_retryable_errors: Optional[bool] = None,
) -> RetryOrchestrator:
    """Orchestrator wired to Redis and RQ from settings."""
    if suppress_retryable_errors is None:
        suppress_retryable_errors = settings.SUPPRESS_RETRYABLE_ERRORS
    return RetryOrchestrator(
        job_name=job_name,
        worker=func,
        counter=AttemptCounter(redis_conn, prefix=settings.RETRY_KEY_PREFIX),
        gateway=RQQueueGateway(redis_conn),
        schedule=BackoffSchedule(schedule if schedule is not None else settings.BACKOFF_SCHEDULE),
        ttl_margin_seconds=settings.RETRY_TTL_MARGIN_SECONDS,
        suppress_retryable_errors=suppress_retryable_errors,
    )


def retryable_job(
    job_name: Optional[str] = None,
    schedule: Optional[Iterable[int]] = None,
    connection: Optional[Redis] = None,
    suppress_retryable_errors: Optional[bool] = None,
):
    """
    Wrap a job function with backoff retries.

    Args:
        job_name: Dotted path RQ imports on retry (default: module.qualname)
        schedule: Delays in seconds (default: settings.BACKOFF_SCHEDULE)
        connection: Redis connection (default: settings.REDIS_URL)
        suppress_retryable_errors: Override settings.SUPPRESS_RETRYABLE_ERRORS

    Only positional job arguments are supported; they form the retry
    identity and are replayed as is on re-enqueue. Keyword arguments raise
    TypeError before any attempt is counted.

    Example:
        @retryable_job()
        def sync_account(queue, account_id):
            ...

        Queue("default", connection=redis).enqueue(sync_account, 42)
    """
    if schedule is not None:
        schedule = tuple(schedule)
        BackoffSchedule(schedule)  # fail at import time, not in the worker

    def decorator(func: Callable[..., Any]) -> Callable[..., dict]:
        name = job_name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def run_job(*args: Any, **kwargs: Any) -> dict:
            if kwargs:
                raise TypeError(
                    f"{name} only accepts positional job arguments; "
                    f"got keyword arguments {sorted(kwargs)}"
                )
            job = get_current_job()
            queue = job.origin if job is not None else settings.DEFAULT_QUEUE
            redis_conn = connection or get_redis_connection()
            orchestrator = build_orchestrator(
                name, func, redis_conn, schedule, suppress_retryable_errors
            )
            return orchestrator.run(queue, *args).to_dict()

        run_job.retry_job_name = name
        return run_job

    return decorator
