"""Performance monitoring utilities for the timesheet reporting API."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("timesheet-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def build_report(...):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            tracker.record_stage_duration(func.__qualname__, duration_ms)
            logger.debug(
                "function timed",
                extra={
                    "function": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for report-generation metrics.

    Tracks:
    - Total reports generated
    - Cumulative and average report duration
    - Slowest stage across all reports
    - Warning count raised by report runs
    - Error count broken down by stage name
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reports_generated: int = 0
        self._total_report_duration_ms: float = 0.0
        self._stage_totals: Dict[str, list] = {}      # stage_name -> [count, total_ms]
        self._error_counts: Dict[str, int] = {}       # stage_name -> count
        self._warning_count: int = 0
        self._slowest_stage: Optional[str] = None
        self._slowest_stage_ms: float = 0.0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_report_complete(self, duration_ms: float, warning_count: int = 0) -> None:
        """Call once when a report run finishes successfully."""
        with self._lock:
            self._reports_generated += 1
            self._total_report_duration_ms += duration_ms
            self._warning_count += warning_count

    def record_stage_duration(self, stage_name: str, duration_ms: float) -> None:
        with self._lock:
            totals = self._stage_totals.setdefault(stage_name, [0, 0.0])
            totals[0] += 1
            totals[1] += duration_ms
            if duration_ms > self._slowest_stage_ms:
                self._slowest_stage_ms = duration_ms
                self._slowest_stage = stage_name

    def record_stage_error(self, stage_name: str) -> None:
        with self._lock:
            self._error_counts[stage_name] = self._error_counts.get(stage_name, 0) + 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            reports_generated        : int
            avg_report_duration_ms   : float  (0 if none generated)
            slowest_stage            : str | None
            slowest_stage_ms         : float
            warning_count            : int
            error_count              : int   (total across all stages)
            error_count_by_stage     : dict  {stage_name: count}
            stage_avg_durations_ms   : dict  {stage_name: avg_ms}
        """
        with self._lock:
            avg = (
                round(self._total_report_duration_ms / self._reports_generated, 2)
                if self._reports_generated > 0
                else 0.0
            )

            stage_avgs: Dict[str, float] = {}
            for stage, (count, total_ms) in self._stage_totals.items():
                stage_avgs[stage] = round(total_ms / count, 2) if count else 0.0

            return {
                "reports_generated": self._reports_generated,
                "avg_report_duration_ms": avg,
                "slowest_stage": self._slowest_stage,
                "slowest_stage_ms": round(self._slowest_stage_ms, 2),
                "warning_count": self._warning_count,
                "error_count": sum(self._error_counts.values()),
                "error_count_by_stage": dict(self._error_counts),
                "stage_avg_durations_ms": stage_avgs,
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._reports_generated = 0
            self._total_report_duration_ms = 0.0
            self._stage_totals.clear()
            self._error_counts.clear()
            self._warning_count = 0
            self._slowest_stage = None
            self._slowest_stage_ms = 0.0


# Module-level singleton; import this instance everywhere else.
tracker = PerformanceTracker()
