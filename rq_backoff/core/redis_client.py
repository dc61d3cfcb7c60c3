from functools import lru_cache
from typing import Optional

from redis import Redis

from rq_backoff.core.config import settings


@lru_cache(maxsize=None)
def get_redis_connection(url: Optional[str] = None) -> Redis:
    """
    Shared Redis connection for counters and queues.

    One client per URL per process; redis-py pools connections internally.
    """
    return Redis.from_url(url or settings.REDIS_URL)
