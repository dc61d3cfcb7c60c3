"""
Chaos and Race Condition Tests

Tests for concurrent and partial-failure scenarios:
- Many workers incrementing the same counter
- Redelivered job processed by several workers at once
- Redis dropping out between attempts

Verifies:
- Attempt numbers are distinct and contiguous
- Exactly one worker concludes the job is exhausted
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest
import redis

from rq_backoff.core.exceptions import CounterStoreError, RetriesExhaustedError
from rq_backoff.job_safety import (
    AttemptCounter,
    AttemptState,
    BackoffSchedule,
    LocalCounterStore,
    RetryOrchestrator,
)


@pytest.fixture
def counter():
    return AttemptCounter(LocalCounterStore(), prefix="chaos")


class TestConcurrentAttempts:

    def test_parallel_increments_are_contiguous(self, counter):
        key = counter.key_for("jobs.race", [1])
        workers = 50
        barrier = threading.Barrier(workers)

        def attempt():
            barrier.wait()
            counter.ensure(key)
            return counter.increment(key)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            attempts = list(pool.map(lambda _: attempt(), range(workers)))

        assert sorted(attempts) == list(range(workers))

    def test_redelivered_job_exhausts_exactly_once(self, counter):
        gateway = Mock()
        gate = threading.Barrier(4)

        def failing(queue, *args):
            gate.wait()
            raise ConnectionError("upstream down")

        orchestrator = RetryOrchestrator(
            "jobs.race", failing, counter, gateway, schedule=BackoffSchedule([0, 10, 20])
        )

        def run():
            try:
                return orchestrator.run("default", 1)
            except RetriesExhaustedError as e:
                return e

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: run(), range(4)))

        exhausted = [r for r in results if isinstance(r, RetriesExhaustedError)]
        scheduled = [r for r in results if not isinstance(r, RetriesExhaustedError)]

        assert len(exhausted) == 1
        assert sorted(r.attempt for r in scheduled) == [0, 1, 2]
        assert all(r.state == AttemptState.SCHEDULED_RETRY for r in scheduled)
        assert sorted(r.delay for r in scheduled) == [0, 10, 20]


class TestStoreOutage:

    def test_redis_outage_between_attempts(self):
        store = LocalCounterStore()
        counter = AttemptCounter(store, prefix="chaos")
        gateway = Mock()
        calls = []

        def failing(queue, *args):
            calls.append(args)
            raise ConnectionError("upstream down")

        orchestrator = RetryOrchestrator("jobs.outage", failing, counter, gateway)
        assert orchestrator.run("default", 9).attempt == 0

        with patch.object(store, "incr", side_effect=redis.ConnectionError("Connection lost")):
            with pytest.raises(CounterStoreError):
                orchestrator.run("default", 9)

        # Recovery continues the sequence; the aborted delivery did not run the job.
        assert orchestrator.run("default", 9).attempt == 1
        assert len(calls) == 2
