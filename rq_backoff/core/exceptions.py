from __future__ import annotations

from typing import Any, Optional


class RQBackoffError(Exception):
    pass


class ConfigError(RQBackoffError):
    pass


class CounterStoreError(RQBackoffError):
    """The attempt counter could not be read or advanced."""


class ResubmissionError(RQBackoffError):
    """The queue rejected a retry re-enqueue."""


class RetriesExhaustedError(RQBackoffError):
    def __init__(
        self,
        job_name: str,
        attempts: int,
        cause: BaseException,
        outcome: Optional[Any] = None,
    ):
        self.job_name = job_name
        self.attempts = attempts
        self.cause = cause
        # AttemptOutcome with state EXHAUSTED when raised by the orchestrator
        self.outcome = outcome
        super().__init__(f"Job {job_name} failed after {attempts} attempts: {cause}")
