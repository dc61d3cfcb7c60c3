"""
Retry orchestrator module.

Wraps one job function and, on every physical execution, decides between
success, a scheduled retry, or exhaustion. All durable state lives in the
attempt counter; the orchestrator itself keeps none between runs.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from rq_backoff.core.exceptions import ResubmissionError, RetriesExhaustedError
from rq_backoff.job_safety.attempt_counter import AttemptCounter
from rq_backoff.job_safety.backoff_schedule import BackoffSchedule
from rq_backoff.services.queue_gateway import QueueGateway

logger = logging.getLogger(__name__)

WorkerFunc = Callable[..., Any]


class AttemptState(str, Enum):
    """
    States of one attempt.

    RUNNING only exists while the job executes and is never returned.
    EXHAUSTED is carried by RetriesExhaustedError.outcome.
    """
    RUNNING = "running"
    SUCCESS = "success"
    SCHEDULED_RETRY = "scheduled_retry"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one attempt."""
    state: AttemptState
    job_name: str
    queue: str
    attempt: int
    delay: Optional[int] = None
    result: Any = None

    def to_dict(self) -> dict:
        # result is passed through as is; it may not be copyable
        return {
            "state": self.state.value,
            "job_name": self.job_name,
            "queue": self.queue,
            "attempt": self.attempt,
            "delay": self.delay,
            "result": self.result,
        }


class RetryOrchestrator:
    """
    Runs a job and coordinates its retries.

    Per attempt: compute the retry key, advance the shared counter to get
    the attempt number N, run the job, bound the counter's TTL, then
    either clear the counter (success / exhaustion) or re-enqueue the job
    with the delay for N.

    While retries remain, a job failure is reported as a scheduled retry
    instead of an error so the worker does not treat it as a hard failure.
    Set ``suppress_retryable_errors=False`` to re-raise the original error
    after the retry has been enqueued.
    """

    def __init__(
        self,
        job_name: str,
        worker: WorkerFunc,
        counter: AttemptCounter,
        gateway: QueueGateway,
        schedule: Optional[BackoffSchedule] = None,
        ttl_margin_seconds: int = 3600,
        suppress_retryable_errors: bool = True,
    ):
        """
        Initialize retry orchestrator.

        Args:
            job_name: Name the job is re-enqueued under (an importable path for RQ)
            worker: Job function taking ``(queue, *args)``
            counter: Shared attempt counter
            gateway: Queue used for re-submission
            schedule: Backoff schedule (default: 0s, 1m, 10m, 1h, 3h, 6h)
            ttl_margin_seconds: Extra lifetime of the counter past the next delay
            suppress_retryable_errors: Hide failures that have a retry scheduled
        """
        self.job_name = job_name
        self.worker = worker
        self.counter = counter
        self.gateway = gateway
        self.schedule = schedule or BackoffSchedule()
        self.ttl_margin_seconds = ttl_margin_seconds
        self.suppress_retryable_errors = suppress_retryable_errors

    @property
    def retry_limit(self) -> int:
        return self.schedule.retry_limit

    def worker_func(self) -> WorkerFunc:
        """Callable with the wrapped job's ``(queue, *args)`` signature."""
        def run(queue: str, *args: Any) -> AttemptOutcome:
            return self.run(queue, *args)
        return run

    def run(self, queue: str, *args: Any) -> AttemptOutcome:
        """
        Execute one attempt of the job.

        Returns:
            AttemptOutcome with state SUCCESS or SCHEDULED_RETRY

        Raises:
            CounterStoreError: attempt number could not be obtained; the job is not run
            RetriesExhaustedError: the job failed on its last allowed attempt
            ResubmissionError: the retry could not be enqueued
        """
        key = self.counter.key_for(self.job_name, args)

        self.counter.ensure(key)
        attempt = self.counter.increment(key)

        result = None
        error = None
        try:
            result = self.worker(queue, *args)
        except Exception as e:
            error = e
        finally:
            # Keep the counter alive until the next retry has had time to run,
            # and let it expire if the process dies here.
            self.counter.bound(key, self.schedule.ttl_for(attempt, self.ttl_margin_seconds))

        if error is None:
            self.counter.clear(key)
            if attempt > 0:
                logger.info(f"Job {self.job_name} succeeded on attempt {attempt + 1}")
            return AttemptOutcome(
                state=AttemptState.SUCCESS,
                job_name=self.job_name,
                queue=queue,
                attempt=attempt,
                result=result,
            )

        if attempt >= self.retry_limit:
            self.counter.clear(key)
            logger.error(
                f"Job {self.job_name} exhausted {self.retry_limit} retries "
                f"after {attempt + 1} attempts: {error}"
            )
            outcome = AttemptOutcome(
                state=AttemptState.EXHAUSTED,
                job_name=self.job_name,
                queue=queue,
                attempt=attempt,
            )
            raise RetriesExhaustedError(
                self.job_name, attempt + 1, error, outcome=outcome
            ) from error

        delay = self.schedule.delay_for(attempt)
        self._resubmit(queue, delay, args, error)

        logger.info(
            f"Job {self.job_name} failed on attempt {attempt + 1}/{self.retry_limit + 1}, "
            f"retrying {'now' if delay <= 0 else f'in {delay}s'}: {error}"
        )

        if not self.suppress_retryable_errors:
            raise error

        return AttemptOutcome(
            state=AttemptState.SCHEDULED_RETRY,
            job_name=self.job_name,
            queue=queue,
            attempt=attempt,
            delay=delay,
        )

    def _resubmit(self, queue: str, delay: int, args: tuple, error: Exception) -> None:
        try:
            if delay <= 0:
                self.gateway.enqueue_now(queue, self.job_name, args)
            else:
                self.gateway.enqueue_after(queue, delay, self.job_name, args)
        except Exception as e:
            raise ResubmissionError(
                f"Failed to re-enqueue {self.job_name} on {queue} after error "
                f"'{error}': {e}"
            ) from e
