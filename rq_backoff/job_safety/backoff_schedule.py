"""
Backoff schedule module.

An ordered table of retry delays in seconds, indexed by zero-based attempt
number. The number of entries is the retry limit.
"""

import logging
from typing import Iterable, Tuple

from rq_backoff.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# 0s, 1m, 10m, 1h, 3h, 6h
DEFAULT_BACKOFF_SCHEDULE: Tuple[int, ...] = (0, 60, 600, 3600, 10800, 21600)


class BackoffSchedule:
    """
    Immutable attempt -> delay table.

    A delay of 0 means the retry is enqueued right away rather than
    scheduled for later.
    """

    def __init__(self, delays: Iterable[int] = DEFAULT_BACKOFF_SCHEDULE):
        delays = tuple(int(d) for d in delays)
        if not delays:
            raise ConfigError("Backoff schedule must contain at least one delay")
        if any(d < 0 for d in delays):
            raise ConfigError(f"Backoff delays must be non-negative: {delays}")
        self._delays = delays

    @property
    def delays(self) -> Tuple[int, ...]:
        return self._delays

    @property
    def retry_limit(self) -> int:
        return len(self._delays)

    def __len__(self) -> int:
        return len(self._delays)

    def __repr__(self):
        return f"BackoffSchedule({list(self._delays)})"

    def _clamped(self, attempt: int) -> int:
        if attempt < 0:
            raise ValueError(f"Attempt number must be non-negative, got {attempt}")
        return self._delays[min(attempt, len(self._delays) - 1)]

    def delay_for(self, attempt: int) -> int:
        """
        Delay in seconds before retrying after the given attempt.

        Attempts past the last entry reuse the last delay. Retries stop at
        the schedule length, so reaching that branch means the counter and
        the retry limit disagree.
        """
        if attempt >= len(self._delays):
            logger.warning(
                f"Attempt {attempt} is beyond the backoff schedule "
                f"(retry limit {self.retry_limit}); reusing last delay"
            )
        return self._clamped(attempt)

    def ttl_for(self, attempt: int, margin_seconds: int) -> int:
        """Counter TTL covering the next scheduled retry plus a margin."""
        return self._clamped(attempt) + margin_seconds
