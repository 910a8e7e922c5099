"""
enrichment/gatekeeper.py

RateLimiter — decides whether a batch may be sent to the classifier.

Sliding 60-second window: at most max_calls_per_minute approved calls.
A refused call is not an error; the batch simply keeps its synthesized
risk scores for this cycle.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60.0


class RateLimiter:
    """
    All decision logic is synchronous and fast (no I/O).

    Args:
        max_calls_per_minute: 0 or less disables the limit.
        clock:                Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        max_calls_per_minute: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_calls_per_minute = max_calls_per_minute
        self._clock = clock
        self._call_times: deque[float] = deque()

    def try_acquire(self) -> bool:
        """Record and approve a call, or return False if the window is full."""
        if self.max_calls_per_minute <= 0:
            return True

        now = self._clock()
        while self._call_times and now - self._call_times[0] >= _WINDOW_SECONDS:
            self._call_times.popleft()

        if len(self._call_times) >= self.max_calls_per_minute:
            logger.warning(
                "Enrichment rate limit reached (%d calls/min)", self.max_calls_per_minute
            )
            return False

        self._call_times.append(now)
        return True

    @property
    def calls_in_window(self) -> int:
        return len(self._call_times)
