"""
test_perf_monitor.py — Unit tests for the in-memory performance tracker.

Tests cover:
  - Per-stage running averages
  - Constant memory per stage regardless of how many durations are recorded
  - Slowest stage, warning and error counters
  - reset() and the ``timed`` decorator
"""

import pytest

from app.services.perf_monitor import PerformanceTracker, timed, tracker


# ===========================================================================
# Class 1: Stage durations
# ===========================================================================

class TestStageDurations:

    def test_running_average_per_stage(self):
        t = PerformanceTracker()
        for ms in (10.0, 20.0, 30.0):
            t.record_stage_duration("allocate", ms)
        t.record_stage_duration("dedup", 5.0)
        avgs = t.get_metrics()["stage_avg_durations_ms"]
        assert avgs == {"allocate": 20.0, "dedup": 5.0}

    def test_stage_state_does_not_grow_with_records(self):
        t = PerformanceTracker()
        for i in range(5000):
            t.record_stage_duration("allocate", float(i % 10))
        assert len(t._stage_totals) == 1
        count, total_ms = t._stage_totals["allocate"]
        assert count == 5000
        assert abs(total_ms - 22500.0) < 1e-6
        assert t.get_metrics()["stage_avg_durations_ms"]["allocate"] == 4.5

    def test_slowest_stage_tracked(self):
        t = PerformanceTracker()
        t.record_stage_duration("dedup", 3.0)
        t.record_stage_duration("allocate", 12.5)
        t.record_stage_duration("dedup", 4.0)
        metrics = t.get_metrics()
        assert metrics["slowest_stage"] == "allocate"
        assert metrics["slowest_stage_ms"] == 12.5


# ===========================================================================
# Class 2: Report and error counters
# ===========================================================================

class TestCounters:

    def test_report_average_and_warnings(self):
        t = PerformanceTracker()
        t.record_report_complete(100.0, warning_count=2)
        t.record_report_complete(50.0, warning_count=1)
        metrics = t.get_metrics()
        assert metrics["reports_generated"] == 2
        assert metrics["avg_report_duration_ms"] == 75.0
        assert metrics["warning_count"] == 3

    def test_errors_counted_by_stage(self):
        t = PerformanceTracker()
        t.record_stage_error("build_report")
        t.record_stage_error("build_report")
        t.record_stage_error("validate")
        metrics = t.get_metrics()
        assert metrics["error_count"] == 3
        assert metrics["error_count_by_stage"] == {"build_report": 2, "validate": 1}

    def test_empty_tracker(self):
        metrics = PerformanceTracker().get_metrics()
        assert metrics["reports_generated"] == 0
        assert metrics["avg_report_duration_ms"] == 0.0
        assert metrics["slowest_stage"] is None
        assert metrics["stage_avg_durations_ms"] == {}

    def test_reset_clears_everything(self):
        t = PerformanceTracker()
        t.record_report_complete(10.0, warning_count=1)
        t.record_stage_duration("allocate", 7.0)
        t.record_stage_error("allocate")
        t.reset()
        assert t.get_metrics() == PerformanceTracker().get_metrics()


# ===========================================================================
# Class 3: timed decorator
# ===========================================================================

class TestTimedDecorator:

    def test_records_duration_under_qualname(self):
        @timed
        def summarise(x):
            return x * 2

        assert summarise(4) == 8
        stages = tracker.get_metrics()["stage_avg_durations_ms"]
        assert summarise.__qualname__ in stages

    def test_records_duration_when_function_raises(self):
        @timed
        def explode():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            explode()
        assert explode.__qualname__ in tracker.get_metrics()["stage_avg_durations_ms"]
