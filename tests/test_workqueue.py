"""Tests for the deduplicating, rate-limited work queue."""
from __future__ import annotations

import threading
import time

import pytest

from node_annotator.core.retry_state import RetryState
from node_annotator.lib.workqueue import RateLimitingQueue


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


@pytest.fixture
def q():
    queue = RateLimitingQueue(name="test", retry_state=RetryState(base_delay=0.01, max_delay=0.05))
    yield queue
    queue.shut_down()


def test_add_deduplicates_queued_keys(q):
    q.add("a")
    q.add("a")
    q.add("b")

    assert len(q) == 2
    assert q.get() == ("a", False)
    assert q.get() == ("b", False)


def test_get_marks_processing_until_done(q):
    q.add("a")
    key, shutdown = q.get()

    assert not shutdown
    assert q.is_processing(key)
    q.done(key)
    assert not q.is_processing(key)
    assert len(q) == 0


def test_readds_while_processing_coalesce_into_one_pass(q):
    q.add("a")
    key, _ = q.get()

    q.add("a")
    q.add("a")
    # Never handed to a second worker while in flight.
    assert len(q) == 0

    q.done(key)
    assert len(q) == 1
    assert q.get() == ("a", False)
    q.done("a")
    assert len(q) == 0


def test_shutdown_unblocks_waiting_get(q):
    result = {}

    def consumer():
        result["value"] = q.get()

    t = threading.Thread(target=consumer)
    t.start()
    time.sleep(0.05)
    q.shut_down()
    t.join(timeout=2)

    assert not t.is_alive()
    assert result["value"] == (None, True)


def test_shutdown_stops_handing_out_queued_keys(q):
    q.add("a")
    q.shut_down()

    assert q.get() == (None, True)
    assert q.shutting_down()


def test_add_after_shutdown_is_ignored(q):
    q.shut_down()
    q.add("a")
    q.add_after("b", 0)
    assert len(q) == 0


def test_add_after_delays_key(q):
    q.add_after("a", 0.05)
    assert len(q) == 0

    assert _wait_for(lambda: len(q) == 1)
    assert q.get() == ("a", False)


def test_add_after_keeps_earliest_ready_time(q):
    q.add_after("a", 30)
    q.add_after("a", 0.02)
    q.add_after("a", 60)

    assert _wait_for(lambda: len(q) == 1)
    time.sleep(0.05)
    assert len(q) == 1


def test_add_after_non_positive_delay_adds_now(q):
    q.add_after("a", 0)
    assert len(q) == 1


def test_add_rate_limited_backs_off_and_forget_resets(q):
    first = q.add_rate_limited("a")
    second = q.add_rate_limited("a")

    assert second >= first
    assert q.num_requeues("a") == 2
    assert _wait_for(lambda: len(q) == 1)

    q.forget("a")
    assert q.num_requeues("a") == 0
    assert q.add_rate_limited("a") == pytest.approx(0.01)


def test_rate_limited_readd_during_processing_replays_after_done(q):
    q.add("a")
    key, _ = q.get()
    q.add_rate_limited(key)

    assert _wait_for(lambda: q.is_processing("a") and len(q) == 0)
    time.sleep(0.05)
    assert len(q) == 0

    q.done(key)
    assert len(q) == 1


def test_injected_retry_state_is_kept():
    state = RetryState(base_delay=3, max_delay=9)
    queue = RateLimitingQueue(name="test", retry_state=state)
    try:
        assert queue.retry_state is state
        assert queue.add_rate_limited("a") == 3
    finally:
        queue.shut_down()
