"""
payroll_cost.py — Clocked-hours basis for payroll cost.

Pay is owed for clocked time whatever was billed, so cost is computed from raw
time entries grouped by day, rate-type bucket and billable flag, never from
ticket hours. Travel time and non-billable time are paid at the shop pay rate
(see rate_resolver.RATE_PRECEDENCE).
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional

from app.services.rate_resolver import pay_rate_for
from app.services.timesheet_types import (
    BILLABLE_BUCKETS,
    EmployeeRateProfile,
    RateBucket,
    TimeEntry,
)


def _zero_hours() -> Dict[RateBucket, float]:
    return {bucket: 0.0 for bucket in BILLABLE_BUCKETS}


@dataclass
class DayPayroll:
    """Clocked hours for one employee on one day."""

    date: date
    billable_hours: Dict[RateBucket, float] = field(default_factory=_zero_hours)
    non_billable_hours: Dict[RateBucket, float] = field(default_factory=_zero_hours)

    def add(self, entry: TimeEntry) -> None:
        target = self.billable_hours if entry.billable else self.non_billable_hours
        target[entry.bucket] += entry.hours

    @property
    def total_hours(self) -> float:
        return sum(self.billable_hours.values()) + sum(self.non_billable_hours.values())

    @property
    def total_non_billable_hours(self) -> float:
        return sum(self.non_billable_hours.values())


def payroll_by_day(entries: Iterable[TimeEntry]) -> Dict[date, DayPayroll]:
    """Group one employee's entries by day, days in ascending order."""
    days: Dict[date, DayPayroll] = {}
    for entry in entries:
        day = days.get(entry.date)
        if day is None:
            day = days[entry.date] = DayPayroll(date=entry.date)
        day.add(entry)
    return dict(sorted(days.items()))


def day_payroll_cost(day: DayPayroll, profile: Optional[EmployeeRateProfile]) -> float:
    cost = 0.0
    for bucket, hours in day.billable_hours.items():
        cost += hours * pay_rate_for(profile, bucket)
    cost += day.total_non_billable_hours * pay_rate_for(profile, RateBucket.INTERNAL)
    return cost


def payroll_cost(
    entries: Iterable[TimeEntry], profile: Optional[EmployeeRateProfile]
) -> float:
    """Total pay owed for the clocked hours in ``entries``."""
    return sum(day_payroll_cost(day, profile) for day in payroll_by_day(entries).values())


def payroll_hours_by_bucket(entries: Iterable[TimeEntry]) -> Dict[str, Dict[str, float]]:
    """Raw clocked hours per bucket, split by billable flag (for payroll views)."""
    grouped: Dict[str, Dict[str, float]] = defaultdict(lambda: {"billable": 0.0, "non_billable": 0.0})
    for entry in entries:
        grouped[entry.bucket.value]["billable" if entry.billable else "non_billable"] += entry.hours
    return {b.value: dict(grouped[b.value]) for b in BILLABLE_BUCKETS}
