"""
Tests for budget analytics and future budget planning
"""
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from wardrobe.application.analytics import BudgetAnalyticsService, PlanFutureBudgetUseCase
from wardrobe.application.budgets import CreateOrUpdateBudgetUseCase
from wardrobe.domain.errors import NotFoundError, ValidationError

# July: seven months elapsed
_NOW = datetime(2025, 7, 1, 9, 0, tzinfo=timezone.utc)
_D = Decimal


def _budget(db, user_id, total):
    return CreateOrUpdateBudgetUseCase(db).execute(
        user_id, {"year": 2025, "total_budget": total}, now=_NOW,
    )


def test_analytics_without_budget_is_empty(db_session, sample_user_id, wardrobe_items):
    analytics = BudgetAnalyticsService(db_session).build(sample_user_id, now=_NOW)

    assert analytics == {
        "budget_efficiency": {},
        "spending_trends": [],
        "category_analysis": [],
        "recommendations": [],
    }


def test_analytics_efficiency_and_projection(db_session, sample_user_id, wardrobe_items):
    _budget(db_session, sample_user_id, "1000")

    analytics = BudgetAnalyticsService(db_session).build(sample_user_id, now=_NOW)

    assert analytics["budget_efficiency"] == {
        "total_budget": _D("1000"),
        "total_spent": _D("620"),
        "remaining_budget": _D("380"),
        "utilization_rate": _D("62.00"),
        "projected_year_end_spending": _D("1062.86"),
    }
    assert [r["type"] for r in analytics["recommendations"]] == ["alert"]
    assert [m["month"] for m in analytics["spending_trends"]] == [1, 3, 6]
    assert [c["group"] for c in analytics["category_analysis"]] == ["dresses", "shirts", "suits", "toddler"]


def test_analytics_high_utilization(db_session, sample_user_id, wardrobe_items):
    _budget(db_session, sample_user_id, "600")

    analytics = BudgetAnalyticsService(db_session).build(sample_user_id, now=_NOW)

    assert analytics["budget_efficiency"]["utilization_rate"] == _D("103.33")
    assert [r["type"] for r in analytics["recommendations"]] == ["warning", "alert"]


def test_analytics_on_track(db_session, sample_user_id, wardrobe_items):
    _budget(db_session, sample_user_id, "5000")

    analytics = BudgetAnalyticsService(db_session).build(sample_user_id, now=_NOW)

    assert analytics["recommendations"] == []


def _plan(db, user_id, estimated, target_date=date(2025, 9, 20), **kwargs):
    return PlanFutureBudgetUseCase(db).execute(
        user_id, kwargs.pop("event", "Wedding"), estimated, target_date, now=_NOW, **kwargs,
    )


def test_plan_affordable(db_session, sample_user_id, wardrobe_items):
    _budget(db_session, sample_user_id, "1000")

    plan = _plan(
        db_session, sample_user_id, "150",
        items=[{"category": "suits", "estimated_price": "120"}],
    )

    assert plan["current_budget_status"] == {
        "total_budget": _D("1000"),
        "current_spending": _D("620"),
        "remaining_budget": _D("380"),
        "can_afford": True,
    }
    assert plan["recommendations"] == []
    assert plan["target_date"] == "2025-09-20"
    assert plan["items"] == [{"category": "suits", "estimated_price": _D("120")}]


def test_plan_uses_over_half_of_remaining(db_session, sample_user_id, wardrobe_items):
    _budget(db_session, sample_user_id, "1000")

    plan = _plan(db_session, sample_user_id, "250")

    assert plan["current_budget_status"]["can_afford"] is True
    assert [r["type"] for r in plan["recommendations"]] == ["caution"]


def test_plan_over_remaining(db_session, sample_user_id, wardrobe_items):
    _budget(db_session, sample_user_id, "1000")

    plan = _plan(db_session, sample_user_id, "500", target_date="2025-12-01")

    assert plan["current_budget_status"]["can_afford"] is False
    assert [r["type"] for r in plan["recommendations"]] == ["warning", "caution"]
    assert plan["recommendations"][0]["shortfall"] == _D("120")


def test_plan_requires_current_year_budget(db_session, sample_user_id, wardrobe_items):
    with pytest.raises(NotFoundError):
        _plan(db_session, sample_user_id, "100")


@pytest.mark.parametrize("kwargs", [
    {"estimated": "-5"},
    {"estimated": "100", "target_date": date(2025, 6, 30)},
    {"estimated": "100", "target_date": "next week"},
    {"estimated": "100", "event": "  "},
])
def test_plan_rejects_bad_input(db_session, sample_user_id, kwargs):
    _budget(db_session, sample_user_id, "1000")

    with pytest.raises(ValidationError):
        _plan(db_session, sample_user_id, **kwargs)


def test_year_operations_use_annual_budget_over_monthly(db_session, sample_user_id, wardrobe_items):
    _budget(db_session, sample_user_id, "5000")
    CreateOrUpdateBudgetUseCase(db_session).execute(
        sample_user_id, {"budget_type": "monthly", "year": 2025, "month": 3, "total_budget": "100"}, now=_NOW,
    )

    analytics = BudgetAnalyticsService(db_session).build(sample_user_id, now=_NOW)
    plan = _plan(db_session, sample_user_id, "300")

    assert analytics["budget_efficiency"]["total_budget"] == _D("5000")
    assert analytics["budget_efficiency"]["utilization_rate"] == _D("12.40")
    assert plan["current_budget_status"]["total_budget"] == _D("5000")
    assert plan["current_budget_status"]["can_afford"] is True
