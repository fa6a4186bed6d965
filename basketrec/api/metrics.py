"""Metrics service for tracking recommendation performance.

Singleton service counting calls, empty responses and latency per strategy.
"""

import threading
from typing import Dict


class _StrategyMetrics:
    __slots__ = ("calls", "empty_results", "total_latency_ms", "min_latency_ms", "max_latency_ms")

    def __init__(self):
        self.calls = 0
        self.empty_results = 0
        self.total_latency_ms = 0.0
        self.min_latency_ms = float("inf")
        self.max_latency_ms = 0.0

    def as_dict(self) -> Dict:
        avg_latency = self.total_latency_ms / self.calls if self.calls > 0 else 0.0
        return {
            "calls": self.calls,
            "empty_results": self.empty_results,
            "average_latency_ms": round(avg_latency, 2),
            "min_latency_ms": round(self.min_latency_ms, 2) if self.min_latency_ms != float("inf") else 0.0,
            "max_latency_ms": round(self.max_latency_ms, 2),
        }


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe per-strategy counters and latency tracking.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._strategies: Dict[str, _StrategyMetrics] = {}
        self._tracked_events = 0
        self._dropped_events = 0
        self._initialized = True

    def record_call(self, strategy: str, latency_ms: float, num_results: int) -> None:
        """Record one strategy call.

        Args:
            strategy: Strategy name, e.g. "personalized"
            latency_ms: Latency in milliseconds
            num_results: Number of recommendations returned
        """
        with self._lock:
            metrics = self._strategies.setdefault(strategy, _StrategyMetrics())
            metrics.calls += 1
            metrics.total_latency_ms += latency_ms
            if num_results == 0:
                metrics.empty_results += 1
            metrics.min_latency_ms = min(metrics.min_latency_ms, latency_ms)
            metrics.max_latency_ms = max(metrics.max_latency_ms, latency_ms)

    def record_tracking(self, success: bool) -> None:
        with self._lock:
            if success:
                self._tracked_events += 1
            else:
                self._dropped_events += 1

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with:
            - strategies: per-strategy calls, empty_results and latency stats
            - tracked_events: events recorded by the tracker
            - dropped_events: events whose recording failed
        """
        with self._lock:
            return {
                "strategies": {name: m.as_dict() for name, m in sorted(self._strategies.items())},
                "tracked_events": self._tracked_events,
                "dropped_events": self._dropped_events,
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._strategies = {}
            self._tracked_events = 0
            self._dropped_events = 0


# Global singleton instance
metrics_service = MetricsService()
