"""
Tests for budget periods and event payloads
"""
import pytest
from datetime import date, datetime
from decimal import Decimal

from wardrobe.domain.budget import (
    Budget, build_period, normalize_label,
    BUDGET_TYPE_ANNUAL, BUDGET_TYPE_MONTHLY, BUDGET_TYPE_QUARTERLY, BUDGET_TYPE_EVENT,
)
from wardrobe.domain.errors import ValidationError


def test_annual_period_covers_calendar_year():
    period = build_period(BUDGET_TYPE_ANNUAL, year=2025)

    assert period.start == date(2025, 1, 1)
    assert period.end == date(2025, 12, 31)
    assert period.total_days == 365
    assert period.label() == "Annual budget 2025"


def test_monthly_period_handles_leap_february():
    period = build_period(BUDGET_TYPE_MONTHLY, year=2024, month=2)

    assert period.start == date(2024, 2, 1)
    assert period.end == date(2024, 2, 29)
    assert period.total_days == 29


def test_quarterly_period_spans_three_months():
    period = build_period(BUDGET_TYPE_QUARTERLY, year=2025, quarter=4)

    assert period.start == date(2025, 10, 1)
    assert period.end == date(2025, 12, 31)
    assert period.label() == "Q4 2025 budget"


def test_event_period_uses_explicit_dates():
    period = build_period(
        BUDGET_TYPE_EVENT, start_date=date(2025, 5, 1), end_date=date(2025, 6, 15),
    )

    assert period.year == 2025
    assert period.total_days == 46


def test_period_bounds_are_inclusive():
    period = build_period(BUDGET_TYPE_MONTHLY, year=2025, month=1)

    assert period.contains(date(2025, 1, 1))
    assert period.contains(datetime(2025, 1, 31, 23, 59))
    assert not period.has_ended(date(2025, 1, 31))
    assert period.has_ended(date(2025, 2, 1))
    assert period.days_remaining(date(2025, 1, 21)) == 10


@pytest.mark.parametrize("kwargs", [
    {"budget_type": "weekly", "year": 2025},
    {"budget_type": BUDGET_TYPE_ANNUAL},
    {"budget_type": BUDGET_TYPE_MONTHLY, "year": 2025, "month": 13},
    {"budget_type": BUDGET_TYPE_QUARTERLY, "year": 2025, "quarter": 0},
    {"budget_type": BUDGET_TYPE_EVENT, "start_date": date(2025, 5, 1)},
    {"budget_type": BUDGET_TYPE_EVENT, "start_date": date(2025, 5, 2), "end_date": date(2025, 5, 1)},
])
def test_build_period_rejects_bad_input(kwargs):
    with pytest.raises(ValidationError):
        build_period(**kwargs)


def test_normalize_label_trims_and_ignores_case():
    assert normalize_label("  Zara ") == normalize_label("zara")
    assert normalize_label(None) == ""


def test_create_payload():
    period = build_period(BUDGET_TYPE_ANNUAL, year=2025)

    payload = Budget.create(7, 1, period, Decimal("1000"), "USD")

    assert payload["budget_id"] == 7
    assert payload["period_start"] == "2025-01-01"
    assert payload["period_end"] == "2025-12-31"
    assert payload["total_amount"] == "1000"
    assert "created_at" in payload


def test_change_status_payload():
    payload = Budget.change_status(7, "active", "completed", "period_ended")

    assert payload == {"budget_id": 7, "from": "active", "to": "completed", "reason": "period_ended"}
