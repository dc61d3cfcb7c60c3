"""
Attempt counter module.

Tracks how many times a job invocation has been attempted, in a store
shared by every worker. The store's atomic increment is the only point
where concurrent workers are serialized.

Any object exposing redis-py's ``setnx``/``incr``/``expire``/``delete``/
``get``/``ttl`` methods can back the counter; ``redis.Redis`` does so
directly.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from redis import Redis
from redis.exceptions import RedisError

from rq_backoff.core.exceptions import CounterStoreError
from rq_backoff.job_safety.retry_identity import retry_key

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "rq:backoff"


class LocalCounterStore:
    """
    In-process store with the subset of the Redis API the counter uses.

    Thread-safe, so it is linearizable for workers sharing one process.
    Expired keys behave as absent.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, expires_at or None)
        self._data: Dict[str, Tuple[int, Optional[float]]] = {}

    def _live(self, name: str) -> Optional[Tuple[int, Optional[float]]]:
        entry = self._data.get(name)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[name]
            return None
        return entry

    def setnx(self, name: str, value: int) -> bool:
        with self._lock:
            if self._live(name) is not None:
                return False
            self._data[name] = (int(value), None)
            return True

    def incr(self, name: str, amount: int = 1) -> int:
        with self._lock:
            entry = self._live(name)
            value, expires_at = entry if entry is not None else (0, None)
            value += amount
            self._data[name] = (value, expires_at)
            return value

    def expire(self, name: str, time: int) -> bool:
        with self._lock:
            entry = self._live(name)
            if entry is None:
                return False
            self._data[name] = (entry[0], self._clock() + time)
            return True

    def delete(self, *names: str) -> int:
        with self._lock:
            removed = 0
            for name in names:
                if self._live(name) is not None:
                    del self._data[name]
                    removed += 1
            return removed

    def get(self, name: str) -> Optional[bytes]:
        with self._lock:
            entry = self._live(name)
            return None if entry is None else str(entry[0]).encode()

    def ttl(self, name: str) -> int:
        with self._lock:
            entry = self._live(name)
            if entry is None:
                return -2
            if entry[1] is None:
                return -1
            return max(0, int(round(entry[1] - self._clock())))

    def exists(self, *names: str) -> int:
        with self._lock:
            return sum(1 for name in names if self._live(name) is not None)


class AttemptCounter:
    """
    TTL-bounded attempt counter addressed by retry key.

    The counter starts at BASELINE, so the first increment returns 0 and
    attempt numbers line up with backoff schedule indexes.
    """

    BASELINE = -1

    def __init__(self, store: Any, prefix: str = DEFAULT_KEY_PREFIX):
        """
        Initialize attempt counter.

        Args:
            store: ``redis.Redis`` or any object with the same counter methods
            prefix: Namespace prefix for counter keys
        """
        self.store = store
        self.prefix = prefix

    @classmethod
    def from_redis(cls, redis_conn: Redis, prefix: str = DEFAULT_KEY_PREFIX) -> "AttemptCounter":
        return cls(redis_conn, prefix=prefix)

    def key_for(self, job_name: str, args: Sequence[Any]) -> str:
        return retry_key(job_name, args, self.prefix)

    def ensure(self, key: str) -> None:
        """Create the counter at BASELINE unless it already exists."""
        try:
            self.store.setnx(key, self.BASELINE)
        except RedisError as e:
            raise CounterStoreError(f"Failed to initialize retry counter {key}: {e}") from e

    def increment(self, key: str) -> int:
        """
        Atomically advance the counter.

        Returns:
            The attempt number this caller owns
        """
        try:
            return int(self.store.incr(key))
        except RedisError as e:
            raise CounterStoreError(f"Failed to increment retry counter {key}: {e}") from e

    def bound(self, key: str, ttl: int) -> bool:
        """
        Set the counter's expiry. Best effort.

        Returns:
            True if the expiry was applied
        """
        try:
            return bool(self.store.expire(key, ttl))
        except RedisError as e:
            logger.warning(f"Failed to set TTL {ttl}s on retry counter {key}: {e}")
            return False

    def clear(self, key: str) -> bool:
        """Delete the counter. Best effort; a leaked key expires on its own."""
        try:
            self.store.delete(key)
            return True
        except RedisError as e:
            logger.warning(f"Failed to clear retry counter {key}, leaving it to expire: {e}")
            return False

    def peek(self, key: str) -> Optional[int]:
        """Current counter value without advancing it, or None if absent."""
        try:
            raw = self.store.get(key)
        except RedisError as e:
            raise CounterStoreError(f"Failed to read retry counter {key}: {e}") from e
        return None if raw is None else int(raw)

    def remaining_ttl(self, key: str) -> Optional[int]:
        """Seconds until the counter expires; None if absent or unbounded."""
        try:
            ttl = int(self.store.ttl(key))
        except RedisError as e:
            raise CounterStoreError(f"Failed to read TTL of retry counter {key}: {e}") from e
        return ttl if ttl >= 0 else None
