"""
Runtime checks for the Redis instance backing retry counters.
"""

from rq_backoff.runtime_checks.redis_safety import (
    CounterStoreValidator,
    ValidationLevel,
    ValidationResult
)

__all__ = [
    "CounterStoreValidator",
    "ValidationLevel",
    "ValidationResult",
]
