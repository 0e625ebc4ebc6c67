"""
Time sources for the committee.

Timestamps are integer unix seconds.
"""

import threading
import time


class SystemClock:
    """Wall clock that never goes backwards"""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """Clock advanced explicitly, for tests and simulations"""

    def __init__(self, start: int = 1_700_000_000):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def increase_to(self, timestamp: int) -> int:
        """Move the clock forward to timestamp (no-op if already past it)"""
        self._now = max(self._now, int(timestamp))
        return self._now
