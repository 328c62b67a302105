"""
breakdown_builder.py — Six-bucket hours / revenue / cost accumulation.

A ``RateTypeBreakdown`` holds one ``RateTypeBucket`` per canonical bucket
(internal, shop, field, travel, shop overtime, field overtime). Daily
reconciliation results are folded into a window-level breakdown here; hours
stay raw until ``rounding`` is applied by the report engine.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from app.services.timesheet_types import ALL_BUCKETS, BILLABLE_BUCKETS, RateBucket


@dataclass
class RateTypeBucket:
    hours: float = 0.0
    revenue: float = 0.0
    cost: float = 0.0
    billed_hours: float = 0.0      # ticket-billed quantity (billable buckets)

    @property
    def profit(self) -> float:
        return self.revenue - self.cost

    def add(self, other: "RateTypeBucket") -> None:
        self.hours += other.hours
        self.revenue += other.revenue
        self.cost += other.cost
        self.billed_hours += other.billed_hours

    def to_dict(self) -> Dict[str, float]:
        return {
            "hours": self.hours,
            "revenue": self.revenue,
            "cost": self.cost,
            "profit": self.profit,
            "billed_hours": self.billed_hours,
        }


def _empty_buckets() -> Dict[RateBucket, RateTypeBucket]:
    return {bucket: RateTypeBucket() for bucket in ALL_BUCKETS}


@dataclass
class RateTypeBreakdown:
    buckets: Dict[RateBucket, RateTypeBucket] = field(default_factory=_empty_buckets)

    def __getitem__(self, bucket: RateBucket) -> RateTypeBucket:
        return self.buckets[bucket]

    def merge(self, other: "RateTypeBreakdown") -> None:
        for bucket in ALL_BUCKETS:
            self.buckets[bucket].add(other.buckets[bucket])

    @property
    def total_hours(self) -> float:
        return sum(b.hours for b in self.buckets.values())

    @property
    def billable_hours(self) -> float:
        return sum(self.buckets[b].hours for b in BILLABLE_BUCKETS)

    @property
    def internal_hours(self) -> float:
        return self.buckets[RateBucket.INTERNAL].hours

    @property
    def billed_hours(self) -> float:
        return sum(self.buckets[b].billed_hours for b in BILLABLE_BUCKETS)

    @property
    def revenue(self) -> float:
        return sum(b.revenue for b in self.buckets.values())

    @property
    def cost(self) -> float:
        return sum(b.cost for b in self.buckets.values())

    @property
    def profit(self) -> float:
        return self.revenue - self.cost

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {bucket.value: self.buckets[bucket].to_dict() for bucket in ALL_BUCKETS}


def build_breakdown(daily: Iterable[RateTypeBreakdown]) -> RateTypeBreakdown:
    """Sum daily breakdowns into one window-level breakdown (no rounding)."""
    total = RateTypeBreakdown()
    for day in daily:
        total.merge(day)
    return total
