"""
reporting_periods.py — Reporting window presets.

Calendar presets (week, month, quarter, year) and biweekly pay periods.
Every resolver takes ``today`` explicitly so results are reproducible.
"""

import calendar
from datetime import date, timedelta
from typing import Callable, Dict, List, NamedTuple, Optional

from app.config import PAYDAY_OFFSET_DAYS, PAY_PERIOD_ANCHOR, PAY_PERIOD_LENGTH_DAYS

CUSTOM_RANGE = "custom"
ALL_TIME = "all_time"        # open window; resolved by callers, not listed as a preset


class ReportingWindow(NamedTuple):
    start_date: date
    end_date: date
    preset: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "preset": self.preset,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }


def _month_window(year: int, month: int) -> tuple:
    # Normalise month offsets that cross a year boundary
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _months_back(today: date, months: int) -> tuple:
    return _month_window(today.year, today.month - months)


def _quarter_window(year: int, quarter: int) -> tuple:
    start, _ = _month_window(year, quarter * 3 + 1)
    _, end = _month_window(year, quarter * 3 + 3)
    return start, end


def _this_week(today: date) -> tuple:
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def _last_quarter(today: date) -> tuple:
    quarter = (today.month - 1) // 3
    if quarter == 0:
        return _quarter_window(today.year - 1, 3)
    return _quarter_window(today.year, quarter - 1)


def pay_period_for(today: date) -> tuple:
    """
    Biweekly pay period shown on ``today``.

    A period stays current until its payday (period end + 5 days) has passed,
    so on 3 Feb 2026 the current period is still 19 Jan – 1 Feb 2026.
    """
    days_since_anchor = (today - PAY_PERIOD_ANCHOR).days
    index = days_since_anchor // PAY_PERIOD_LENGTH_DAYS
    previous_end = PAY_PERIOD_ANCHOR + timedelta(days=index * PAY_PERIOD_LENGTH_DAYS - 1)
    if today <= previous_end + timedelta(days=PAYDAY_OFFSET_DAYS):
        index -= 1
    start = PAY_PERIOD_ANCHOR + timedelta(days=index * PAY_PERIOD_LENGTH_DAYS)
    return start, start + timedelta(days=PAY_PERIOD_LENGTH_DAYS - 1)


def _previous_pay_period(today: date) -> tuple:
    start, end = pay_period_for(today)
    shift = timedelta(days=PAY_PERIOD_LENGTH_DAYS)
    return start - shift, end - shift


PRESETS: Dict[str, Callable[[date], tuple]] = {
    "today":               lambda t: (t, t),
    "this_week":           _this_week,
    "this_month":          lambda t: _months_back(t, 0),
    "last_month":          lambda t: _months_back(t, 1),
    "two_months_ago":      lambda t: _months_back(t, 2),
    "three_months_ago":    lambda t: _months_back(t, 3),
    "this_quarter":        lambda t: _quarter_window(t.year, (t.month - 1) // 3),
    "last_quarter":        _last_quarter,
    "this_year":           lambda t: (date(t.year, 1, 1), date(t.year, 12, 31)),
    "last_year":           lambda t: (date(t.year - 1, 1, 1), date(t.year - 1, 12, 31)),
    "current_pay_period":  pay_period_for,
    "previous_pay_period": _previous_pay_period,
}


def resolve_window(
    preset: str,
    today: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> ReportingWindow:
    """
    Resolve a preset name (or ``"custom"`` with explicit dates) to a window.

    A custom range without both dates defaults to the current month.
    Raises ValueError for an unknown preset or a custom range that ends
    before it starts.
    """
    today = today or date.today()
    if preset == CUSTOM_RANGE:
        if start_date is None or end_date is None:
            start, end = _months_back(today, 0)
            return ReportingWindow(start, end, CUSTOM_RANGE)
        if end_date < start_date:
            raise ValueError(
                f"end_date {end_date.isoformat()} is before start_date {start_date.isoformat()}"
            )
        return ReportingWindow(start_date, end_date, CUSTOM_RANGE)

    resolver = PRESETS.get(preset)
    if resolver is None:
        raise ValueError(
            f"Unknown reporting period '{preset}'; choose one of "
            f"{', '.join(list(PRESETS) + [CUSTOM_RANGE])}"
        )
    start, end = resolver(today)
    return ReportingWindow(start, end, preset)


def list_windows(today: Optional[date] = None) -> List[ReportingWindow]:
    today = today or date.today()
    return [resolve_window(name, today) for name in PRESETS]
