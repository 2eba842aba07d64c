"""Navigation statistics.

Per-session counters and verification latency samples. Each
NavigationSession owns its own collector so independent devices never
share mutable state; the lock only guards readers on other threads
(e.g. a status display polling the summary).
"""

from collections import defaultdict
from math import ceil
from threading import Lock
from typing import Any

# Counter names used by the navigation engine
VERIFICATIONS = "verifications"
MATCHES = "matches"
MISMATCHES = "mismatches"
NO_FRAMES = "no_frames"
RECOVERIES = "recoveries"
CHECKPOINTS_PASSED = "checkpoints_passed"
ACTIONS_DISPATCHED = "actions_dispatched"


class MetricsCollector:
    """Thread-safe counters and latency samples for one session.

    Attributes:
        _lock: Thread lock for safe concurrent access
        _counters: Dictionary tracking counter values by metric name
        _latency_samples: Verification latencies in milliseconds
        _max_samples: Maximum number of latency samples to retain
    """

    def __init__(self, max_samples: int = 1000):
        """Initialize the metrics collector.

        Args:
            max_samples: Maximum number of latency samples to retain.
                When exceeded, oldest samples are removed.
        """
        self._lock = Lock()
        self._counters: dict[str, int] = defaultdict(int)
        self._latency_samples: list[float] = []
        self._max_samples = max_samples

    def increment(self, metric: str, value: int = 1) -> None:
        """Increment a counter metric."""
        with self._lock:
            self._counters[metric] += value

    def record_latency(self, elapsed_ms: float) -> None:
        """Record how long one verification took.

        Args:
            elapsed_ms: Latency in milliseconds
        """
        with self._lock:
            self._latency_samples.append(elapsed_ms)

            if len(self._latency_samples) > self._max_samples:
                excess = len(self._latency_samples) - self._max_samples
                self._latency_samples = self._latency_samples[excess:]

    def get_counter(self, metric: str) -> int:
        """Get the current value of a counter (0 if never incremented)."""
        with self._lock:
            return self._counters.get(metric, 0)

    def get_latency_samples(self) -> list[float]:
        """Get a copy of the current latency samples."""
        with self._lock:
            return list(self._latency_samples)

    def get_summary(self) -> dict[str, Any]:
        """Get counters plus min/max/avg/p95 verification latency.

        Returns:
            Dictionary with:
                - counters: Dictionary of all counter values
                - latency_count: Number of latency samples
                - latency_min_ms / latency_max_ms / latency_avg_ms /
                  latency_p95_ms: Latency statistics in milliseconds
        """
        with self._lock:
            summary: dict[str, Any] = {
                "counters": dict(self._counters),
                "latency_count": len(self._latency_samples),
            }

            if self._latency_samples:
                sorted_samples = sorted(self._latency_samples)
                summary["latency_min_ms"] = sorted_samples[0]
                summary["latency_max_ms"] = sorted_samples[-1]
                summary["latency_avg_ms"] = sum(sorted_samples) / len(sorted_samples)

                p95_index = ceil(len(sorted_samples) * 0.95) - 1
                summary["latency_p95_ms"] = sorted_samples[max(0, p95_index)]
            else:
                summary["latency_min_ms"] = 0.0
                summary["latency_max_ms"] = 0.0
                summary["latency_avg_ms"] = 0.0
                summary["latency_p95_ms"] = 0.0

            return summary


__all__ = [
    "MetricsCollector",
    "VERIFICATIONS",
    "MATCHES",
    "MISMATCHES",
    "NO_FRAMES",
    "RECOVERIES",
    "CHECKPOINTS_PASSED",
    "ACTIONS_DISPATCHED",
]
