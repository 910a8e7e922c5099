"""
backend/metrics.py

Lightweight thread-safe counters for the scan pipeline.
No external dependencies — uses Python's threading.Lock.

Usage:
    from aegis.backend.metrics import METRICS
    METRICS.scans_started.inc()
    print(METRICS.as_dict())
"""

import threading


class Counter:
    """A thread-safe integer counter."""

    __slots__ = ("_value", "_lock")

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:  # pragma: no cover
        return f"Counter({self._value})"


class Metrics:
    """Singleton holding all process-wide counters."""

    def __init__(self) -> None:
        self.scans_started: Counter = Counter()
        """Scan cycles that passed the single-flight guard."""

        self.scans_rejected: Counter = Counter()
        """Scan requests dropped because a cycle was already in flight."""

        self.packets_generated: Counter = Counter()

        self.packets_evicted: Counter = Counter()
        """Packets pushed out of the retention window (oldest first)."""

        self.corrections_applied: Counter = Counter()

        self.corrections_ignored: Counter = Counter()
        """Corrections whose id was no longer (or never) in the buffer."""

        self.enrichment_failures: Counter = Counter()
        """Gateway calls that raised or timed out."""

    def as_dict(self) -> dict:
        """Return all counters as a plain dict (safe for JSON serialisation)."""
        return {
            name: counter.value
            for name, counter in vars(self).items()
            if isinstance(counter, Counter)
        }

    def reset_all(self) -> None:
        """Reset every counter to zero (useful in tests)."""
        for attr in vars(self).values():
            if isinstance(attr, Counter):
                attr.reset()


# Module-level singleton, import from here everywhere
METRICS = Metrics()
