"""
Per-origin request spacing.

MusicBrainz allows roughly one request per second per client; we keep 1.1s
between requests to the same host. Callers for one origin are fully
serialized: each holds the origin's lock while it waits, so a second caller
queues behind the first instead of racing on the last-issue timestamp.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict

log = logging.getLogger("rate_gate")

DEFAULT_MIN_INTERVAL = 1.1  # seconds


class RateGate:
    def __init__(self, min_interval: float = DEFAULT_MIN_INTERVAL,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._last: Dict[str, float] = {}

    def _lock_for(self, origin: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(origin)
            if lock is None:
                lock = self._locks[origin] = threading.Lock()
            return lock

    def acquire(self, origin: str) -> None:
        """Block until a request to origin may be issued, then record the issue time."""
        with self._lock_for(origin):
            last = self._last.get(origin)
            if last is not None:
                wait = self.min_interval - (self._clock() - last)
                if wait > 0:
                    log.debug("Waiting %.3fs before next request to %s", wait, origin)
                    self._sleep(wait)
            self._last[origin] = self._clock()
