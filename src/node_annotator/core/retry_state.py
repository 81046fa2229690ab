'''
retry_state.py
- In-memory retry tracking for node reconciliation keys.
- Centralized logic for exponential backoff, the delay cap and reset on success.
'''

import threading
from collections import defaultdict

from node_annotator.core.constants import DEFAULT_BASE_RETRY_DELAY, DEFAULT_MAX_RETRY_DELAY

# 2**62 * base already exceeds any sane cap; avoids float overflow on long streaks.
MAX_EXPONENT = 62


class RetryState:
    """
    Per-key exponential failure backoff.

    Each call to when() for a key counts one more consecutive failure and
    returns base_delay * 2**(failures - 1), capped at max_delay. forget()
    resets the key so its next failure streak starts from base_delay again.
    """

    def __init__(self, base_delay=DEFAULT_BASE_RETRY_DELAY, max_delay=DEFAULT_MAX_RETRY_DELAY):
        if base_delay <= 0:
            raise ValueError(f"base_delay must be > 0, got: {base_delay}")
        if max_delay < base_delay:
            raise ValueError(f"max_delay ({max_delay}) must be >= base_delay ({base_delay})")
        self.base_delay = base_delay
        self.max_delay = max_delay
        # Tracks {key: consecutive_failures}
        self._failures = defaultdict(int)
        self._lock = threading.Lock()

    def when(self, key):
        """
        Record a failure for key and return how long to wait before retrying.

        Args:
            key (str): The reconciliation key.

        Returns:
            float: Delay in seconds.
        """
        with self._lock:
            exp = self._failures[key]
            self._failures[key] = exp + 1

        if exp > MAX_EXPONENT:
            return self.max_delay
        return min(self.base_delay * (2 ** exp), self.max_delay)

    def num_requeues(self, key):
        with self._lock:
            return self._failures.get(key, 0)

    def forget(self, key):
        """
        Reset the retry state for a key (e.g. after a successful sync).
        """
        with self._lock:
            self._failures.pop(key, None)
