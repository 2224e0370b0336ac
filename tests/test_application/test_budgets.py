"""
Tests for budget use cases (create/update, lookup, status, alerts, refresh)
"""
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from wardrobe.application.budgets import (
    CreateOrUpdateBudgetUseCase, ChangeBudgetStatusUseCase, AcknowledgeAlertUseCase,
    RefreshBudgetUseCase, get_budget, list_budgets, refresh_active_budgets,
)
from wardrobe.application.transactions import RecordTransactionUseCase
from wardrobe.domain.errors import NotFoundError, ValidationError
from wardrobe.infrastructure.db.models import BudgetModel, EventLog
from wardrobe.infrastructure.eventlog.repository import EventLogRepository

_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
_D = Decimal


def _save(db, user_id, now=_NOW, **overrides):
    data = {
        "year": 2025,
        "total_budget": "1000",
        "category_budgets": {"menswear": "300", "womenswear": "400"},
    }
    data.update(overrides)
    return CreateOrUpdateBudgetUseCase(db).execute(user_id, data, now=now, actor_user_id=user_id)


def _spend(db, user_id, budget_id, amount, category="menswear", **extra):
    return RecordTransactionUseCase(db).execute(
        user_id, budget_id, {"amount": amount, "category": category, **extra}, now=_NOW,
    )


def test_create_budget_defaults(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)

    assert budget.id is not None
    assert budget.name == "Annual budget 2025"
    assert budget.status == "active"
    assert budget.currency == "USD"
    assert budget.period_start.isoformat() == "2025-01-01"
    assert budget.period_end.isoformat() == "2025-12-31"
    assert budget.total_spent == 0
    assert budget.remaining_budget == _D("1000")
    assert budget.warning_percent == 75
    assert budget.danger_percent == 90
    assert budget.alert_threshold == 80

    categories = {c.category: c for c in budget.categories}
    assert list(categories) == ["menswear", "womenswear", "kidswear", "accessories", "footwear"]
    assert categories["menswear"].percentage == _D("30")
    assert categories["kidswear"].allocated == 0

    repo = EventLogRepository(db_session)
    assert repo.count_events(sample_user_id, ["budget_created"]) == 1


def test_save_same_period_updates_in_place(db_session, sample_user_id):
    first = _save(db_session, sample_user_id)
    first_id, first_version = first.id, first.version

    second = _save(
        db_session, sample_user_id,
        total_budget={"amount": "2000", "currency": "EUR"},
        occasion_budgets=[{"occasion": "wedding", "allocated": "500", "priority": "high"}],
        brand_budgets=[{"brand": "Zara", "allocated": "300"}],
        alerts={"warning": {"percentage": 60}, "danger": {"percentage": 85}},
        notes="Wedding year",
    )

    assert second.id == first_id
    assert second.version > first_version
    assert second.total_amount == _D("2000")
    assert second.currency == "EUR"
    assert second.warning_percent == 60
    assert second.notes == "Wedding year"
    assert db_session.query(BudgetModel).count() == 1

    allocations = {(a.kind, a.label): a for a in second.allocations}
    assert allocations[("OCCASION", "wedding")].priority == "high"
    assert allocations[("BRAND", "Zara")].priority == "mid-range"

    repo = EventLogRepository(db_session)
    assert repo.count_events(sample_user_id, ["budget_updated"]) == 1


def test_update_drops_removed_allocations(db_session, sample_user_id):
    _save(db_session, sample_user_id, brand_budgets=[{"brand": "Zara"}, {"brand": "Gap"}])

    budget = _save(db_session, sample_user_id, brand_budgets=[{"brand": "gap", "allocated": "50"}])

    assert [(a.label, a.allocated) for a in budget.allocations] == [("gap", _D("50"))]


@pytest.mark.parametrize("overrides", [
    {"category_budgets": {"hats": "10"}},
    {"total_budget": "-1"},
    {"total_budget": None},
    {"currency": "JPY"},
    {"brand_budgets": [{"brand": "Zara"}, {"brand": " zara"}]},
    {"occasion_budgets": [{"occasion": "funeral"}]},
    {"alerts": {"warning": {"percentage": 150}}},
    {"name": "x" * 101},
    {"budget_type": "monthly"},
    {"recurring": {"is_recurring": True}},
])
def test_invalid_budget_input_is_rejected(db_session, sample_user_id, overrides):
    with pytest.raises(ValidationError):
        _save(db_session, sample_user_id, **overrides)

    assert db_session.query(BudgetModel).count() == 0


def test_get_budget_returns_latest_for_year(db_session, sample_user_id):
    annual = _save(db_session, sample_user_id)
    monthly = _save(db_session, sample_user_id, budget_type="monthly", month=3, total_budget="100")

    assert get_budget(db_session, sample_user_id, year=2025).id == monthly.id
    assert get_budget(db_session, sample_user_id, budget_id=annual.id).id == annual.id
    assert len(list_budgets(db_session, sample_user_id)) == 2


def test_get_budget_not_found(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)

    with pytest.raises(NotFoundError):
        get_budget(db_session, sample_user_id, year=2024)
    with pytest.raises(NotFoundError):
        get_budget(db_session, sample_user_id + 1, budget_id=budget.id)
    with pytest.raises(NotFoundError):
        get_budget(db_session, sample_user_id + 1)


def test_lowering_total_fires_alert_in_same_write(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)
    _spend(db_session, sample_user_id, budget.id, "500")
    assert budget.notifications == []

    budget = _save(db_session, sample_user_id, total_budget="600")

    assert budget.percentage_used == _D("83.3333")
    assert [n.alert_type for n in budget.notifications] == ["warning"]
    assert budget.alert_level == "warning"


def test_pause_and_resume(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)

    paused = ChangeBudgetStatusUseCase(db_session).execute(sample_user_id, budget.id, "paused", now=_NOW)
    assert paused.status == "paused"

    resumed = ChangeBudgetStatusUseCase(db_session).execute(sample_user_id, budget.id, "active", now=_NOW)
    assert resumed.status == "active"

    changes = (
        db_session.query(EventLog)
        .filter(EventLog.event_type == "budget_status_changed")
        .order_by(EventLog.id)
        .all()
    )
    assert [(e.payload_json["from"], e.payload_json["to"]) for e in changes] == [
        ("active", "paused"), ("paused", "active"),
    ]


def test_resume_after_period_end_completes(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)
    ChangeBudgetStatusUseCase(db_session).execute(sample_user_id, budget.id, "paused", now=_NOW)

    later = datetime(2026, 1, 5, tzinfo=timezone.utc)
    resumed = ChangeBudgetStatusUseCase(db_session).execute(sample_user_id, budget.id, "active", now=later)

    assert resumed.status == "completed"


def test_invalid_status_change(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)
    ChangeBudgetStatusUseCase(db_session).execute(sample_user_id, budget.id, "cancelled", now=_NOW)

    with pytest.raises(ValidationError):
        ChangeBudgetStatusUseCase(db_session).execute(sample_user_id, budget.id, "active", now=_NOW)


def test_acknowledge_alert_is_idempotent(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)
    recorded = _spend(db_session, sample_user_id, budget.id, "800")
    notification_id = recorded.alerts[0].id

    use_case = AcknowledgeAlertUseCase(db_session)
    first = use_case.execute(sample_user_id, budget.id, notification_id)
    second = use_case.execute(sample_user_id, budget.id, notification_id)

    assert first.acknowledged is True
    assert second.acknowledged is True
    repo = EventLogRepository(db_session)
    assert repo.count_events(sample_user_id, ["budget_alert_acknowledged"]) == 1


def test_acknowledge_unknown_notification(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)

    with pytest.raises(NotFoundError):
        AcknowledgeAlertUseCase(db_session).execute(sample_user_id, budget.id, 999)


def test_refresh_completes_ended_period(db_session, sample_user_id):
    budget = _save(db_session, sample_user_id)
    _spend(db_session, sample_user_id, budget.id, "365")

    result = RefreshBudgetUseCase(db_session).execute(budget.id, now=datetime(2026, 1, 2, tzinfo=timezone.utc))

    assert result.status_changed
    assert result.new_status == "completed"
    refreshed = get_budget(db_session, sample_user_id, budget_id=budget.id)
    assert refreshed.status == "completed"
    assert refreshed.average_spending_per_day == _D("0.99")


def test_refresh_unknown_budget(db_session):
    with pytest.raises(NotFoundError):
        RefreshBudgetUseCase(db_session).execute(404, now=_NOW)


def test_refresh_active_budgets(db_session, sample_user_id):
    _save(db_session, sample_user_id)
    _save(db_session, sample_user_id, year=2026, budget_type="monthly", month=1, total_budget="100")

    stats = refresh_active_budgets(db_session, now=datetime(2026, 1, 15, tzinfo=timezone.utc))

    assert stats == {"checked": 2, "status_changed": 1, "alerts_raised": 0, "conflicts": 0}
    statuses = {b.budget_type: b.status for b in list_budgets(db_session, sample_user_id)}
    assert statuses == {"annual": "completed", "monthly": "active"}
