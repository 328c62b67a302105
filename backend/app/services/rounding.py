"""
Hour and money rounding.

Hours round UP to the nearest 0.1 (payroll-favourable, never nearest or down),
and only on fully summed totals. Money is reported to the cent.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR

from app.config import HOURS_NOISE_TOLERANCE, HOURS_ROUNDING_INCREMENT, MONEY_DECIMALS

_INCREMENT = Decimal(HOURS_ROUNDING_INCREMENT)
_NOISE = Decimal(HOURS_NOISE_TOLERANCE)


def round_hours_up(hours: float) -> float:
    """
    Ceiling of ``hours`` to the next 0.1; non-positive input returns 0.0.

    A value within ``HOURS_NOISE_TOLERANCE`` above a 0.1 step is treated as
    float noise and stays on that step.
    """
    if hours is None or hours <= 0:
        return 0.0
    exact = Decimal(hours)
    step = exact.quantize(_INCREMENT, rounding=ROUND_FLOOR)
    if exact - step <= _NOISE:
        return float(step)
    return float(exact.quantize(_INCREMENT, rounding=ROUND_CEILING))


def round_money(amount: float) -> float:
    return round(amount, MONEY_DECIMALS) + 0.0  # folds -0.0 into 0.0


def sum_rounded_hours(values) -> float:
    """Sum already-rounded hour figures, trimming float noise without re-rounding."""
    return round(sum(values), 1) + 0.0


def sum_money(values) -> float:
    return round(sum(values), MONEY_DECIMALS) + 0.0
