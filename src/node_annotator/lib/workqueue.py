"""
workqueue.py
- Deduplicating, rate-limited work queue of node reconciliation keys.
- A key is never handed to two workers at once; keys re-added while being
  processed are replayed exactly once after done().
- Failed keys are re-added after an exponential per-key delay (see retry_state.py).
"""

import heapq
import itertools
import threading
import time
from collections import deque

from loguru import logger

from node_annotator.core.retry_state import RetryState


class RateLimitingQueue:
    """
    Work queue with set semantics plus delayed and rate-limited adds.

    Key states:
        queued      -- in _queue and _dirty, waiting for a worker
        processing  -- handed out by get(), in _processing
        dirty while processing -- in both _processing and _dirty; requeued on done()
        waiting     -- scheduled in _waiting for a future add
    """

    def __init__(self, name="", retry_state=None, clock=time.monotonic):
        self.name = name
        self.retry_state = retry_state if retry_state is not None else RetryState()
        self._clock = clock

        self._cond = threading.Condition()
        self._queue = deque()
        self._dirty = set()
        self._processing = set()
        self._shutting_down = False

        # Heap of (ready_at, seq, key); _waiting_ready holds the live ready time per key.
        self._waiting = []
        self._waiting_ready = {}
        self._seq = itertools.count()

        self._waiting_thread = threading.Thread(
            target=self._waiting_loop, name=f"{name or 'workqueue'}-delay", daemon=True
        )
        self._waiting_thread.start()

    def __len__(self):
        with self._cond:
            return len(self._queue)

    # --- Basic queue ---
    def add(self, key):
        with self._cond:
            self._add_locked(key)

    def _add_locked(self, key):
        if self._shutting_down:
            return
        if key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._cond.notify()

    def get(self):
        """
        Block until a key is available.

        Returns:
            tuple: (key, shutdown). shutdown is True only once the queue has
            been shut down, in which case key is None.
        """
        with self._cond:
            while not self._queue and not self._shutting_down:
                self._cond.wait()
            if self._shutting_down:
                return None, True

            key = self._queue.popleft()
            self._processing.add(key)
            self._dirty.discard(key)
            return key, False

    def done(self, key):
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty and not self._shutting_down:
                self._queue.append(key)
                self._cond.notify()
            self._cond.notify_all()

    def shut_down(self):
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()
        logger.debug(f"[workqueue] {self.name} shutting down")

    def shutting_down(self):
        with self._cond:
            return self._shutting_down

    def is_processing(self, key):
        with self._cond:
            return key in self._processing

    # --- Delayed adds ---
    def add_after(self, key, delay):
        """Add key once delay seconds have passed. Non-positive delays add immediately."""
        with self._cond:
            if self._shutting_down:
                return
            if delay <= 0:
                self._add_locked(key)
                return

            ready_at = self._clock() + delay
            current = self._waiting_ready.get(key)
            if current is not None and current <= ready_at:
                return
            self._waiting_ready[key] = ready_at
            heapq.heappush(self._waiting, (ready_at, next(self._seq), key))
            self._cond.notify_all()

    def _waiting_loop(self):
        with self._cond:
            while not self._shutting_down:
                if not self._waiting:
                    self._cond.wait()
                    continue

                ready_at, _, key = self._waiting[0]
                if self._waiting_ready.get(key) != ready_at:
                    # Superseded by an earlier add_after for the same key.
                    heapq.heappop(self._waiting)
                    continue

                remaining = ready_at - self._clock()
                if remaining > 0:
                    self._cond.wait(timeout=remaining)
                    continue

                heapq.heappop(self._waiting)
                del self._waiting_ready[key]
                self._add_locked(key)

    # --- Rate limiting ---
    def add_rate_limited(self, key):
        delay = self.retry_state.when(key)
        logger.debug(f"[workqueue] {self.name} retrying {key} in {delay:.3f}s")
        self.add_after(key, delay)
        return delay

    def forget(self, key):
        self.retry_state.forget(key)

    def num_requeues(self, key):
        return self.retry_state.num_requeues(key)
