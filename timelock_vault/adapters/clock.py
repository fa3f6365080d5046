"""
Time sources consumed by the ledger
"""

import threading
import time
from typing import Protocol


class TimeSource(Protocol):
    def current_time(self) -> int:
        ...


class SystemClock:
    """Wall clock in whole seconds"""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def current_time(self) -> int:
        # Never report a time earlier than one already handed out
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """Clock advanced explicitly, for tests and simulations"""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before zero")
        self._now = start

    def current_time(self) -> int:
        return self._now

    def advance(self, delta: int) -> int:
        if delta < 0:
            raise ValueError(f"Clock cannot move backwards by {-delta}")
        self._now += delta
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move back from {self._now} to {timestamp}")
        self._now = timestamp
        return self._now
