"""
Unit tests for PerformanceMonitor.
"""

import pytest

from kakeibo.services.performance import PerformanceMonitor, Thresholds

from .conftest import FakeClock


@pytest.fixture
def clock():
    return FakeClock(now=0.0)


@pytest.fixture
def monitor(clock):
    return PerformanceMonitor(Thresholds(), clock=clock)


class TestTimers:
    def test_end_timer_returns_duration(self, monitor, clock):
        monitor.start_timer("DB_get_transactions")
        clock.advance(0.25)

        assert monitor.end_timer("DB_get_transactions") == pytest.approx(0.25)
        metric = monitor.get_metric("DB_get_transactions")
        assert metric.start_time == 0.0
        assert metric.end_time == 0.25

    def test_end_unknown_timer(self, monitor):
        assert monitor.end_timer("never_started") is None

    def test_timer_context_manager_records_on_error(self, monitor, clock):
        with pytest.raises(RuntimeError):
            with monitor.timer("NET_select_assets"):
                clock.advance(1.0)
                raise RuntimeError("boom")

        assert monitor.get_metric("NET_select_assets").duration == pytest.approx(1.0)

    def test_clear(self, monitor):
        monitor.start_timer("x")
        monitor.clear()
        assert monitor.get_all_metrics() == []

    def test_concurrent_timers_with_same_name(self, monitor, clock):
        with monitor.timer("DB_get_assets"):
            clock.advance(1.0)
            with monitor.timer("DB_get_assets"):
                clock.advance(0.5)
            clock.advance(1.0)

        durations = [m.duration for m in monitor.get_all_metrics()]
        assert durations == [pytest.approx(0.5), pytest.approx(2.5)]

    def test_history_is_bounded(self, clock):
        monitor = PerformanceMonitor(clock=clock, history=2)
        for name in ("DB_a", "DB_b", "DB_c"):
            with monitor.timer(name):
                clock.advance(0.1)

        assert [m.name for m in monitor.get_all_metrics()] == ["DB_b", "DB_c"]


class TestWarnings:
    @pytest.mark.parametrize(
        "name,duration,expected",
        [
            ("DB_q", 0.5, None),
            ("DB_q", 1.0, "slow"),
            ("DB_q", 3.5, "very_slow"),
            ("NET_r", 1.5, None),
            ("NET_r", 2.0, "slow"),
            ("NET_r", 5.0, "very_slow"),
            ("other", 100.0, None),
        ],
    )
    def test_check_warning(self, monitor, name, duration, expected):
        assert monitor.check_warning(name, duration) == expected

    def test_custom_thresholds(self):
        monitor = PerformanceMonitor(Thresholds(slow_query=0.1, very_slow_query=0.2))
        assert monitor.check_warning("DB_q", 0.15) == "slow"


class TestStats:
    def test_stats(self, monitor, clock):
        for name, duration in (("DB_a", 0.5), ("DB_b", 1.5), ("NET_c", 3.0)):
            monitor.start_timer(name)
            clock.advance(duration)
            monitor.end_timer(name)

        stats = monitor.stats()

        assert stats["totalQueries"] == 2
        assert stats["totalNetworkRequests"] == 1
        assert stats["averageQueryTime"] == pytest.approx(1.0)
        assert stats["averageNetworkTime"] == pytest.approx(3.0)
        assert stats["slowQueries"] == ["DB_b"]
        assert stats["slowNetworkRequests"] == ["NET_c"]

    def test_empty_stats(self, monitor):
        stats = monitor.stats()
        assert stats["averageQueryTime"] == 0.0
        assert stats["slowQueries"] == []

    def test_counts_every_call(self, monitor, clock):
        for _ in range(3):
            with monitor.timer("NET_select_transactions"):
                clock.advance(0.2)

        stats = monitor.stats()

        assert stats["totalNetworkRequests"] == 3
        assert stats["averageNetworkTime"] == pytest.approx(0.2)
