import argparse
import logging
from typing import List, Optional

from redis import Redis
from rq import Queue, Worker

from rq_backoff.core.config import settings
from rq_backoff.core.logging import setup_logger
from rq_backoff.runtime_checks import CounterStoreValidator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rq-backoff-worker",
        description="Run an RQ worker (with scheduler) for retryable jobs",
    )
    parser.add_argument("queues", nargs="*", help="Queues to listen on (default: WORKER_QUEUES)")
    parser.add_argument("--redis-url", default=None, help="Redis URL (default: REDIS_URL)")
    parser.add_argument(
        "--skip-redis-checks",
        action="store_true",
        help="Do not validate Redis configuration on startup",
    )
    parser.add_argument("--burst", action="store_true", help="Exit once queues are empty")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(settings)

    redis_conn = Redis.from_url(args.redis_url or settings.REDIS_URL)
    listen = args.queues or settings.WORKER_QUEUES

    if settings.VALIDATE_REDIS_ON_STARTUP and not args.skip_redis_checks:
        if not CounterStoreValidator(redis_conn).validate_on_startup():
            logger.error("Redis is not safe for retry counters; refusing to start worker")
            return 1

    logger.info(f"Starting worker on queues: {', '.join(listen)}")
    worker = Worker([Queue(name, connection=redis_conn) for name in listen], connection=redis_conn)
    # Scheduler is required for delayed retries to be moved onto their queue.
    worker.work(with_scheduler=True, burst=args.burst)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
