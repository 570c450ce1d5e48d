"""Timing of backend queries and network requests."""

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

import structlog

logger = structlog.get_logger(__name__)

QUERY_PREFIX = "DB_"
NETWORK_PREFIX = "NET_"

# Finished calls kept for stats()
DEFAULT_HISTORY = 1000


@dataclass
class Thresholds:
    """Durations (seconds) above which a call is reported as slow."""
    slow_query: float = 1.0
    very_slow_query: float = 3.0
    slow_network: float = 2.0
    very_slow_network: float = 5.0


@dataclass
class PerformanceMetric:
    name: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None


class PerformanceMonitor:
    """Times backend calls and keeps a bounded history of finished ones.

    ``timer()`` measures each call on its own, so concurrent calls under the
    same name do not disturb each other. ``start_timer``/``end_timer`` pair up
    by name and suit one-off sequential measurements.
    """

    def __init__(
        self,
        thresholds: Optional[Thresholds] = None,
        clock: Callable[[], float] = time.perf_counter,
        history: int = DEFAULT_HISTORY,
    ):
        self.thresholds = thresholds or Thresholds()
        self._clock = clock
        self._running: dict[str, PerformanceMetric] = {}
        self._latest: dict[str, PerformanceMetric] = {}
        self._finished: deque[PerformanceMetric] = deque(maxlen=history)

    def start_timer(self, name: str) -> None:
        self._running[name] = PerformanceMetric(name=name, start_time=self._clock())

    def end_timer(self, name: str) -> Optional[float]:
        """Stop the timer and return its duration in seconds."""
        metric = self._running.pop(name, None)
        if metric is None:
            logger.warning("timer_not_started", name=name)
            return None
        return self._finish(metric)

    def _finish(self, metric: PerformanceMetric) -> float:
        metric.end_time = self._clock()
        metric.duration = metric.end_time - metric.start_time
        logger.debug("timer_finished", name=metric.name, duration_ms=round(metric.duration * 1000, 2))
        self.check_warning(metric.name, metric.duration)

        self._latest[metric.name] = metric
        self._finished.append(metric)
        return metric.duration

    def check_warning(self, name: str, duration: float) -> Optional[str]:
        """Log slow queries/requests; returns 'slow', 'very_slow' or None."""
        if name.startswith(QUERY_PREFIX):
            slow, very_slow = self.thresholds.slow_query, self.thresholds.very_slow_query
        elif name.startswith(NETWORK_PREFIX):
            slow, very_slow = self.thresholds.slow_network, self.thresholds.very_slow_network
        else:
            return None

        if duration >= very_slow:
            logger.warning("very_slow_call", name=name, duration_ms=round(duration * 1000, 2))
            return "very_slow"
        if duration >= slow:
            logger.warning("slow_call", name=name, duration_ms=round(duration * 1000, 2))
            return "slow"
        return None

    def get_metric(self, name: str) -> Optional[PerformanceMetric]:
        """The most recent finished call under name, else a running one."""
        return self._latest.get(name) or self._running.get(name)

    def get_all_metrics(self) -> list[PerformanceMetric]:
        """Finished calls, oldest first."""
        return list(self._finished)

    def clear(self) -> None:
        self._running.clear()
        self._latest.clear()
        self._finished.clear()

    @contextmanager
    def timer(self, name: str) -> Iterator[PerformanceMetric]:
        metric = PerformanceMetric(name=name, start_time=self._clock())
        try:
            yield metric
        finally:
            self._finish(metric)

    def stats(self) -> dict:
        """Call counts, averages and slow calls for queries and network requests."""
        metrics = self.get_all_metrics()
        queries = [m for m in metrics if m.name.startswith(QUERY_PREFIX)]
        requests = [m for m in metrics if m.name.startswith(NETWORK_PREFIX)]

        def average(items: list[PerformanceMetric]) -> float:
            if not items:
                return 0.0
            return sum(m.duration or 0.0 for m in items) / len(items)

        slow_queries = {
            m.name for m in queries if m.duration and m.duration >= self.thresholds.slow_query
        }
        slow_requests = {
            m.name for m in requests if m.duration and m.duration >= self.thresholds.slow_network
        }

        return {
            "totalQueries": len(queries),
            "totalNetworkRequests": len(requests),
            "averageQueryTime": average(queries),
            "averageNetworkTime": average(requests),
            "slowQueries": sorted(slow_queries),
            "slowNetworkRequests": sorted(slow_requests),
        }
