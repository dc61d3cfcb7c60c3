"""Tests for the attempt counter and the local counter store."""

from unittest.mock import Mock

import pytest
import redis

from rq_backoff.core.exceptions import CounterStoreError
from rq_backoff.job_safety.attempt_counter import AttemptCounter, LocalCounterStore


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return LocalCounterStore(clock=clock)


@pytest.fixture
def counter(store):
    return AttemptCounter(store, prefix="test:backoff")


class TestLocalCounterStore:

    def test_setnx_only_when_absent(self, store):
        assert store.setnx("k", -1) is True
        assert store.setnx("k", 5) is False
        assert store.get("k") == b"-1"

    def test_incr_creates_missing_key(self, store):
        assert store.incr("k") == 1
        assert store.incr("k") == 2

    def test_expire_and_ttl(self, store, clock):
        store.setnx("k", 0)
        assert store.ttl("k") == -1
        assert store.expire("k", 30) is True
        assert store.ttl("k") == 30
        clock.now += 10
        assert store.ttl("k") == 20

    def test_expired_key_is_absent(self, store, clock):
        store.setnx("k", 0)
        store.expire("k", 5)
        clock.now += 5
        assert store.get("k") is None
        assert store.exists("k") == 0
        assert store.ttl("k") == -2
        assert store.setnx("k", -1) is True

    def test_incr_keeps_ttl(self, store):
        store.setnx("k", 0)
        store.expire("k", 30)
        store.incr("k")
        assert store.ttl("k") == 30

    def test_expire_missing_key(self, store):
        assert store.expire("missing", 10) is False

    def test_delete(self, store):
        store.setnx("a", 1)
        assert store.delete("a", "b") == 1
        assert store.exists("a") == 0


class TestAttemptCounter:

    def test_key_for_uses_prefix(self, counter):
        key = counter.key_for("jobs.sync", [1])
        assert key.startswith("test:backoff:jobs.sync:")

    def test_first_increment_after_ensure_is_zero(self, counter):
        counter.ensure("k")
        assert counter.increment("k") == 0
        assert counter.increment("k") == 1

    def test_ensure_is_noop_when_present(self, counter):
        counter.ensure("k")
        counter.increment("k")
        counter.increment("k")
        counter.ensure("k")
        assert counter.peek("k") == 1

    def test_bound_sets_ttl(self, counter):
        counter.ensure("k")
        assert counter.bound("k", 3660) is True
        assert counter.remaining_ttl("k") == 3660

    def test_clear_removes_counter(self, counter, store):
        counter.ensure("k")
        assert counter.clear("k") is True
        assert store.exists("k") == 0
        assert counter.peek("k") is None

    def test_remaining_ttl_none_without_expiry(self, counter):
        counter.ensure("k")
        assert counter.remaining_ttl("k") is None
        assert counter.remaining_ttl("missing") is None


class TestAttemptCounterStoreFailures:

    @pytest.fixture
    def broken_store(self):
        store = Mock()
        error = redis.ConnectionError("Connection lost")
        store.setnx.side_effect = error
        store.incr.side_effect = error
        store.expire.side_effect = error
        store.delete.side_effect = error
        store.get.side_effect = error
        store.ttl.side_effect = error
        return store

    def test_ensure_failure_propagates(self, broken_store):
        with pytest.raises(CounterStoreError) as exc_info:
            AttemptCounter(broken_store).ensure("k")
        assert isinstance(exc_info.value.__cause__, redis.ConnectionError)

    def test_increment_failure_propagates(self, broken_store):
        with pytest.raises(CounterStoreError):
            AttemptCounter(broken_store).increment("k")

    def test_bound_failure_is_tolerated(self, broken_store, caplog):
        assert AttemptCounter(broken_store).bound("k", 60) is False
        assert "Failed to set TTL" in caplog.text

    def test_clear_failure_is_tolerated(self, broken_store, caplog):
        assert AttemptCounter(broken_store).clear("k") is False
        assert "Failed to clear retry counter" in caplog.text

    def test_peek_failure_propagates(self, broken_store):
        with pytest.raises(CounterStoreError):
            AttemptCounter(broken_store).peek("k")

    def test_works_with_redis_client_surface(self):
        redis_conn = Mock(spec=redis.Redis)
        redis_conn.incr.return_value = 3
        counter = AttemptCounter.from_redis(redis_conn, prefix="p")

        counter.ensure("k")
        assert counter.increment("k") == 3
        counter.bound("k", 120)
        counter.clear("k")

        redis_conn.setnx.assert_called_once_with("k", -1)
        redis_conn.incr.assert_called_once_with("k")
        redis_conn.expire.assert_called_once_with("k", 120)
        redis_conn.delete.assert_called_once_with("k")
