"""
Tests for spend projection
"""
import pytest
from datetime import date, datetime
from decimal import Decimal

from wardrobe.domain.budget import BudgetPeriod, build_period, BUDGET_TYPE_MONTHLY, BUDGET_TYPE_EVENT
from wardrobe.domain.errors import InvalidPeriodError
from wardrobe.domain.projection import project

_JAN = build_period(BUDGET_TYPE_MONTHLY, year=2025, month=1)


def test_linear_projection():
    p = project(Decimal("220"), _JAN, date(2025, 1, 11))

    assert p.days_elapsed == 11
    assert p.total_days == 31
    assert p.average_per_day == Decimal("20.00")
    assert p.projected_spending == Decimal("620.00")


def test_first_day_counts_as_one_day():
    p = project(Decimal("31"), _JAN, datetime(2025, 1, 1, 0, 30))

    assert p.days_elapsed == 1
    assert p.projected_spending == Decimal("961.00")


def test_before_start_is_zero():
    p = project(Decimal("100"), _JAN, date(2024, 12, 31))

    assert p.days_elapsed == 0
    assert p.average_per_day == 0
    assert p.projected_spending == 0


def test_after_end_is_not_clamped():
    p = project(Decimal("310"), _JAN, date(2025, 2, 9))

    assert p.days_elapsed == 40
    assert p.average_per_day == Decimal("7.75")


def test_rounds_half_up():
    period = build_period(BUDGET_TYPE_EVENT, start_date=date(2025, 1, 1), end_date=date(2025, 1, 3))

    p = project(Decimal("1"), period, date(2025, 1, 3))

    assert p.average_per_day == Decimal("0.33")
    assert p.projected_spending == Decimal("1.00")


def test_inverted_period_raises():
    period = BudgetPeriod(date(2025, 2, 1), date(2025, 1, 1), BUDGET_TYPE_EVENT)

    with pytest.raises(InvalidPeriodError):
        project(Decimal("10"), period, date(2025, 1, 15))
