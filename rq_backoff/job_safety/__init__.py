"""
Job safety module for retrying failed RQ jobs with backoff.

This module provides:
- Deterministic retry identities for job invocations
- Backoff schedules mapping attempt numbers to delays
- A shared, TTL-bounded attempt counter
- The retry orchestrator that ties them together
"""

from .retry_identity import retry_identifier, retry_identity, retry_key
from .backoff_schedule import BackoffSchedule, DEFAULT_BACKOFF_SCHEDULE
from .attempt_counter import AttemptCounter, LocalCounterStore
from .retry_orchestrator import AttemptOutcome, AttemptState, RetryOrchestrator

__all__ = [
    'retry_identifier',
    'retry_identity',
    'retry_key',
    'BackoffSchedule',
    'DEFAULT_BACKOFF_SCHEDULE',
    'AttemptCounter',
    'LocalCounterStore',
    'AttemptOutcome',
    'AttemptState',
    'RetryOrchestrator',
]
