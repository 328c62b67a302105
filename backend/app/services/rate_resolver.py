"""
rate_resolver.py — Billable / pay rate resolution per employee and rate type.

Fallbacks are data, not branches: ``RATE_PRECEDENCE`` lists, for each
(department kind, bucket), the ordered sources tried for the billable rate and
for the pay rate. The first source that yields a value wins.

Source kinds:
  - a profile attribute name, e.g. ``"field_pay_rate"``
  - ``ENTRY_RATE``     — legacy ``time_entries.rate`` (ignored when 0)
  - ``DEFAULT_RATE``   — last-resort shop rate (config.DEFAULT_SHOP_BILLABLE_RATE)
  - ``overtime_of(attr)`` — 1.5× the named base attribute
"""

from typing import Any, Dict, NamedTuple, Optional, Tuple

from app.config import DEFAULT_SHOP_BILLABLE_RATE, OVERTIME_MULTIPLIER
from app.services.timesheet_types import (
    EmployeeRateProfile,
    RateBucket,
    classify_rate_label,
)

ENTRY_RATE = "entry_rate"
DEFAULT_RATE = "default_rate"
_OT_PREFIX = "overtime_of:"

STANDARD = "standard"
PANEL_SHOP = "panel_shop"


def overtime_of(attr: str) -> str:
    return f"{_OT_PREFIX}{attr}"


class ResolvedRates(NamedTuple):
    billable_rate: Optional[float]
    pay_rate: float
    billable_source: Optional[str] = None
    pay_source: Optional[str] = None


UNCONFIGURED = ResolvedRates(0.0, 0.0)

# (department kind, bucket) → (billable sources, pay sources)
RATE_PRECEDENCE: Dict[Tuple[str, RateBucket], Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    (STANDARD, RateBucket.SHOP_TIME): (
        ("shop_rate", ENTRY_RATE, DEFAULT_RATE),
        ("shop_pay_rate",),
    ),
    (STANDARD, RateBucket.TRAVEL_TIME): (
        ("travel_rate", ENTRY_RATE, DEFAULT_RATE),
        ("shop_pay_rate",),                  # no separate travel pay rate
    ),
    (STANDARD, RateBucket.FIELD_TIME): (
        ("field_rate", ENTRY_RATE, DEFAULT_RATE),
        ("field_pay_rate",),
    ),
    (STANDARD, RateBucket.SHOP_OVERTIME): (
        ("shop_ot_rate", overtime_of("shop_rate"), ENTRY_RATE, DEFAULT_RATE),
        ("shop_ot_pay_rate", overtime_of("shop_pay_rate")),
    ),
    (STANDARD, RateBucket.FIELD_OVERTIME): (
        ("field_ot_rate", overtime_of("field_rate"), ENTRY_RATE, DEFAULT_RATE),
        ("field_ot_pay_rate", overtime_of("field_pay_rate")),
    ),
    (STANDARD, RateBucket.INTERNAL): (
        ("internal_rate",),
        ("shop_pay_rate",),
    ),
    (PANEL_SHOP, RateBucket.SHOP_TIME): (
        ("shop_rate", ENTRY_RATE, DEFAULT_RATE),
        ("shop_pay_rate",),
    ),
    (PANEL_SHOP, RateBucket.TRAVEL_TIME): (
        ("travel_rate", ENTRY_RATE, DEFAULT_RATE),
        ("shop_pay_rate",),
    ),
    (PANEL_SHOP, RateBucket.FIELD_TIME): (
        (),
        ("field_pay_rate", "shop_pay_rate"),
    ),
    (PANEL_SHOP, RateBucket.SHOP_OVERTIME): (
        (),
        ("shop_ot_pay_rate", overtime_of("shop_pay_rate")),
    ),
    (PANEL_SHOP, RateBucket.FIELD_OVERTIME): (
        (),
        ("field_ot_pay_rate", overtime_of("field_pay_rate"), overtime_of("shop_pay_rate")),
    ),
    (PANEL_SHOP, RateBucket.INTERNAL): (
        ("internal_rate",),
        ("shop_pay_rate",),
    ),
}


def department_kind(profile: EmployeeRateProfile) -> str:
    return PANEL_SHOP if profile.is_panel_shop else STANDARD


def _source_value(
    profile: EmployeeRateProfile, source: str, entry_rate: float
) -> Optional[float]:
    if source == ENTRY_RATE:
        return entry_rate if entry_rate and entry_rate > 0 else None
    if source == DEFAULT_RATE:
        return DEFAULT_SHOP_BILLABLE_RATE
    if source.startswith(_OT_PREFIX):
        base = getattr(profile, source[len(_OT_PREFIX):])
        return base * OVERTIME_MULTIPLIER if base is not None else None
    return getattr(profile, source)


def _first_value(
    profile: EmployeeRateProfile, sources: Tuple[str, ...], entry_rate: float
) -> Tuple[Optional[float], Optional[str]]:
    for source in sources:
        value = _source_value(profile, source, entry_rate)
        if value is not None:
            return value, source
    return None, None


def resolve_bucket_rates(
    profile: Optional[EmployeeRateProfile],
    bucket: RateBucket,
    entry_rate: float = 0.0,
) -> ResolvedRates:
    """
    Resolve (billable_rate, pay_rate) for a bucket.

    A missing profile resolves to ``UNCONFIGURED`` (0, 0): the employee is
    still reported, with zero revenue and cost. A Panel Shop field/overtime
    billable rate resolves to ``None``.
    """
    if profile is None:
        return UNCONFIGURED
    billable_sources, pay_sources = RATE_PRECEDENCE[(department_kind(profile), bucket)]
    billable, billable_source = _first_value(profile, billable_sources, entry_rate)
    pay, pay_source = _first_value(profile, pay_sources, entry_rate)
    return ResolvedRates(
        billable_rate=billable,
        pay_rate=pay if pay is not None else 0.0,
        billable_source=billable_source,
        pay_source=pay_source,
    )


def resolve_rates(
    profile: Optional[EmployeeRateProfile],
    rate_type_label: Any,
    is_overtime: bool = False,
    entry_rate: float = 0.0,
) -> ResolvedRates:
    """Resolve rates for a free-text rate label; unknown labels resolve as shop time."""
    bucket = classify_rate_label(rate_type_label, is_overtime=is_overtime)
    if bucket is None:
        bucket = RateBucket.SHOP_OVERTIME if is_overtime else RateBucket.SHOP_TIME
    return resolve_bucket_rates(profile, bucket, entry_rate=entry_rate)


def billable_rate_for(
    profile: Optional[EmployeeRateProfile], bucket: RateBucket, entry_rate: float = 0.0
) -> float:
    return resolve_bucket_rates(profile, bucket, entry_rate).billable_rate or 0.0


def pay_rate_for(profile: Optional[EmployeeRateProfile], bucket: RateBucket) -> float:
    return resolve_bucket_rates(profile, bucket).pay_rate
