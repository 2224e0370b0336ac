"""
Projection engine: linear end-of-period spend extrapolation
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from wardrobe.domain.budget import BudgetPeriod
from wardrobe.domain.errors import InvalidPeriodError

_ZERO = Decimal("0")
_MONEY_Q = Decimal("0.01")


@dataclass(frozen=True)
class Projection:
    days_elapsed: int
    total_days: int
    average_per_day: Decimal
    projected_spending: Decimal


def project(total_spent: Decimal, period: BudgetPeriod, as_of: date | datetime) -> Projection:
    """
    Extrapolate spend to the end of the period from the daily spend rate

    Day counts are inclusive calendar days: Jan 1 - Jan 31 is 31 days and
    Jan 11 is day 11 of it.

    Args:
        total_spent: spend so far
        period: budget period
        as_of: evaluation instant

    Returns:
        Projection; all zero when as_of is before the period starts

    Raises:
        InvalidPeriodError: period end precedes its start

    Example:
        >>> p = project(Decimal("220"), jan_period, date(2025, 1, 11))
        >>> (p.average_per_day, p.projected_spending)
        (Decimal('20.00'), Decimal('620.00'))
    """
    total_days = period.total_days
    if total_days <= 0:
        raise InvalidPeriodError(
            f"Period {period.start.isoformat()} - {period.end.isoformat()} has no valid length"
        )

    day = as_of.date() if isinstance(as_of, datetime) else as_of
    if day < period.start:
        return Projection(
            days_elapsed=0,
            total_days=total_days,
            average_per_day=_ZERO.quantize(_MONEY_Q),
            projected_spending=_ZERO.quantize(_MONEY_Q),
        )

    days_elapsed = max(1, (day - period.start).days + 1)
    average = total_spent / days_elapsed
    projected = average * total_days

    return Projection(
        days_elapsed=days_elapsed,
        total_days=total_days,
        average_per_day=average.quantize(_MONEY_Q, rounding=ROUND_HALF_UP),
        projected_spending=projected.quantize(_MONEY_Q, rounding=ROUND_HALF_UP),
    )
