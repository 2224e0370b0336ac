"""
Budget use cases and query helpers.

Every mutator goes through BudgetEngine.sync() in the same unit of work, so
the persisted spending columns, alert state and status never lag the ledger.
Writes are guarded by the budget's version column (see commit_with_retry).
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Tuple

from sqlalchemy import case
from sqlalchemy.orm import Session

from wardrobe.config import get_settings
from wardrobe.application.budget_engine import (
    ALLOCATION_BRAND, ALLOCATION_OCCASION, BudgetEngine, SyncResult, commit_with_retry, local_now,
)
from wardrobe.domain.budget import (
    Allocation, AlertThresholds, Budget, BudgetPeriod, build_period,
    BUDGET_TYPE_ANNUAL, BRAND_PRIORITIES, CATEGORIES, CURRENCIES, OCCASIONS, OCCASION_PRIORITIES,
    RECURRING_FREQUENCIES, NAME_MAX_LENGTH, NOTES_MAX_LENGTH, STATUS_ACTIVE,
    normalize_label,
)
from wardrobe.domain.errors import ConflictError, NotFoundError, ValidationError
from wardrobe.domain.ledger import parse_amount
from wardrobe.domain import lifecycle
from wardrobe.infrastructure.db.models import (
    BudgetModel, BudgetCategoryModel, BudgetAllocationModel, BudgetNotificationModel,
)
from wardrobe.infrastructure.eventlog.repository import EventLogRepository

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


@dataclass(frozen=True)
class BudgetInput:
    """Validated budget configuration."""
    period: BudgetPeriod
    name: str
    total_amount: Decimal
    currency: str
    categories: Dict[str, Decimal]
    occasions: Tuple[Allocation, ...]
    brands: Tuple[Allocation, ...]
    thresholds: AlertThresholds
    alert_threshold: int
    notes: str | None
    is_recurring: bool
    recurring_frequency: str | None
    recurring_auto_renew: bool
    recurring_adjustment_factor: Decimal


def _parse_date(value: Any, field_name: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field_name} is not an ISO date: {value!r}")


def _parse_int(value: Any, field_name: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer: {value!r}")


def _parse_percent(value: Any, field_name: str, default: int) -> int:
    percent = _parse_int(value, field_name)
    if percent is None:
        return default
    if not 1 <= percent <= 100:
        raise ValidationError(f"{field_name} must be between 1 and 100")
    return percent


def _allocated(value: Any, field_name: str) -> Decimal:
    """Allocation given either as a bare amount or as {"allocated": amount}."""
    if isinstance(value, Mapping):
        value = value.get("allocated", 0)
    try:
        return parse_amount(value)
    except ValidationError as exc:
        raise ValidationError(f"{field_name}: {exc}")


def _parse_allocations(
    items: Any,
    label_field: str,
    priorities: Tuple[str, ...],
    default_priority: str,
    allowed_labels: Tuple[str, ...] | None = None,
) -> Tuple[Allocation, ...]:
    if not items:
        return ()
    if isinstance(items, (str, bytes)) or not isinstance(items, (list, tuple)):
        raise ValidationError(f"{label_field} budgets must be a list")

    result = []
    seen = set()
    for item in items:
        if not isinstance(item, Mapping):
            raise ValidationError(f"{label_field} budget entries must be objects")
        label = (item.get(label_field) or "").strip()
        if not label:
            raise ValidationError(f"{label_field} is required")
        if len(label) > NAME_MAX_LENGTH:
            raise ValidationError(f"{label_field} must be at most {NAME_MAX_LENGTH} characters")
        if allowed_labels is not None and label.lower() not in allowed_labels:
            raise ValidationError(f"Unknown {label_field}: {label}")
        key = normalize_label(label)
        if key in seen:
            raise ValidationError(f"Duplicate {label_field}: {label}")
        seen.add(key)

        priority = item.get("priority") or default_priority
        if priority not in priorities:
            raise ValidationError(
                f"Unknown {label_field} priority: {priority}. Use one of: {', '.join(priorities)}"
            )

        result.append(Allocation(
            label=label,
            allocated=_allocated(item.get("allocated", 0), f"{label} allocation"),
            priority=priority,
            target_date=_parse_date(item.get("target_date"), "target_date"),
        ))
    return tuple(result)


def parse_budget_input(data: Mapping[str, Any]) -> BudgetInput:
    """
    Validate raw budget configuration

    Args:
        data: budget_type (default annual), year, month, quarter, start_date,
            end_date, name, total_budget (amount or {"amount", "currency"}),
            currency, category_budgets ({category: amount}), occasion_budgets,
            brand_budgets, alert_threshold, alerts, notes, recurring

    Raises:
        ValidationError: any field is missing or malformed
    """
    settings = get_settings()

    period = build_period(
        data.get("budget_type") or BUDGET_TYPE_ANNUAL,
        year=_parse_int(data.get("year"), "year"),
        month=_parse_int(data.get("month"), "month"),
        quarter=_parse_int(data.get("quarter"), "quarter"),
        start_date=_parse_date(data.get("start_date"), "start_date"),
        end_date=_parse_date(data.get("end_date"), "end_date"),
    )

    total = data.get("total_budget")
    currency = data.get("currency")
    if isinstance(total, Mapping):
        currency = total.get("currency") or currency
        total = total.get("amount")
    if total is None:
        raise ValidationError("total_budget is required")
    total_amount = parse_amount(total)

    currency = (currency or settings.DEFAULT_CURRENCY).upper()
    if currency not in CURRENCIES:
        raise ValidationError(f"Unsupported currency: {currency}")

    raw_categories = data.get("category_budgets") or {}
    if not isinstance(raw_categories, Mapping):
        raise ValidationError("category_budgets must be an object")
    categories = {cat: _ZERO for cat in CATEGORIES}
    for name, value in raw_categories.items():
        key = str(name).strip().lower()
        if key not in CATEGORIES:
            raise ValidationError(f"Unknown category: {name}. Use one of: {', '.join(CATEGORIES)}")
        categories[key] = _allocated(value, f"{key} allocation")

    alerts = data.get("alerts") or {}
    warning = alerts.get("warning") or {}
    danger = alerts.get("danger") or {}
    exceeded = alerts.get("exceeded") or {}
    thresholds = AlertThresholds(
        alerts_enabled=bool(alerts.get("enabled", True)),
        warning_percent=Decimal(_parse_percent(
            warning.get("percentage"), "warning percentage", settings.ALERT_WARNING_PERCENT)),
        warning_enabled=bool(warning.get("enabled", True)),
        danger_percent=Decimal(_parse_percent(
            danger.get("percentage"), "danger percentage", settings.ALERT_DANGER_PERCENT)),
        danger_enabled=bool(danger.get("enabled", True)),
        exceeded_enabled=bool(exceeded.get("enabled", True)),
    )

    name = (data.get("name") or "").strip() or period.label()
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"name must be at most {NAME_MAX_LENGTH} characters")

    notes = (data.get("notes") or "").strip() or None
    if notes and len(notes) > NOTES_MAX_LENGTH:
        raise ValidationError(f"notes must be at most {NOTES_MAX_LENGTH} characters")

    recurring = data.get("recurring") or {}
    is_recurring = bool(recurring.get("is_recurring", False))
    frequency = recurring.get("frequency")
    if frequency is not None and frequency not in RECURRING_FREQUENCIES:
        raise ValidationError(f"Unknown recurring frequency: {frequency}")
    if is_recurring and frequency is None:
        raise ValidationError("recurring frequency is required for a recurring budget")
    factor = recurring.get("adjustment_factor")
    factor = Decimal("1.0") if factor is None else parse_amount(factor)

    return BudgetInput(
        period=period,
        name=name,
        total_amount=total_amount,
        currency=currency,
        categories=categories,
        occasions=_parse_allocations(
            data.get("occasion_budgets"), "occasion", OCCASION_PRIORITIES, "medium", OCCASIONS,
        ),
        brands=_parse_allocations(
            data.get("brand_budgets"), "brand", BRAND_PRIORITIES, "mid-range",
        ),
        thresholds=thresholds,
        alert_threshold=_parse_percent(
            data.get("alert_threshold"), "alert_threshold", settings.DEFAULT_ALERT_THRESHOLD),
        notes=notes,
        is_recurring=is_recurring,
        recurring_frequency=frequency,
        recurring_auto_renew=bool(recurring.get("auto_renew", False)),
        recurring_adjustment_factor=factor,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def find_budget_for_year(db: Session, user_id: int, year: int) -> BudgetModel | None:
    """
    The year's budget of the user, or None

    Year-level spend is compared against this budget, so an annual budget
    wins over monthly, quarterly or event budgets of the same year. Without
    one, the most recently created budget of the year is used.
    """
    annual_first = case((BudgetModel.budget_type == BUDGET_TYPE_ANNUAL, 0), else_=1)
    return (
        db.query(BudgetModel)
        .filter(BudgetModel.user_id == user_id, BudgetModel.period_year == year)
        .order_by(annual_first, BudgetModel.created_at.desc(), BudgetModel.id.desc())
        .first()
    )


def get_budget(
    db: Session,
    user_id: int,
    year: int | None = None,
    budget_id: int | None = None,
) -> BudgetModel:
    """
    Budget by id (owned by the user), or the user's latest budget for a year

    Raises:
        NotFoundError: no such budget for this user
    """
    if budget_id is not None:
        budget = db.get(BudgetModel, budget_id)
        if budget is None or budget.user_id != user_id:
            raise NotFoundError("Budget", budget_id)
        return budget

    if year is not None:
        budget = find_budget_for_year(db, user_id, year)
        if budget is None:
            raise NotFoundError("Budget", f"for {year}")
        return budget

    budget = (
        db.query(BudgetModel)
        .filter(BudgetModel.user_id == user_id)
        .order_by(BudgetModel.created_at.desc(), BudgetModel.id.desc())
        .first()
    )
    if budget is None:
        raise NotFoundError("Budget")
    return budget


def list_budgets(db: Session, user_id: int, status: str | None = None) -> List[BudgetModel]:
    query = db.query(BudgetModel).filter(BudgetModel.user_id == user_id)
    if status:
        query = query.filter(BudgetModel.status == status)
    return query.order_by(BudgetModel.period_start.desc(), BudgetModel.id.desc()).all()


# ---------------------------------------------------------------------------
# Use cases
# ---------------------------------------------------------------------------


def _apply_input(budget: BudgetModel, budget_in: BudgetInput) -> None:
    budget.name = budget_in.name
    budget.period_end = budget_in.period.end
    budget.period_year = budget_in.period.year
    budget.period_month = budget_in.period.month
    budget.period_quarter = budget_in.period.quarter
    budget.total_amount = budget_in.total_amount
    budget.currency = budget_in.currency

    budget.alerts_enabled = budget_in.thresholds.alerts_enabled
    budget.warning_percent = int(budget_in.thresholds.warning_percent)
    budget.warning_enabled = budget_in.thresholds.warning_enabled
    budget.danger_percent = int(budget_in.thresholds.danger_percent)
    budget.danger_enabled = budget_in.thresholds.danger_enabled
    budget.exceeded_enabled = budget_in.thresholds.exceeded_enabled
    budget.alert_threshold = budget_in.alert_threshold

    budget.notes = budget_in.notes
    budget.is_recurring = budget_in.is_recurring
    budget.recurring_frequency = budget_in.recurring_frequency
    budget.recurring_auto_renew = budget_in.recurring_auto_renew
    budget.recurring_adjustment_factor = budget_in.recurring_adjustment_factor

    rows = {row.category: row for row in budget.categories}
    for position, category in enumerate(CATEGORIES):
        row = rows.get(category)
        if row is None:
            row = BudgetCategoryModel(category=category, spent=_ZERO, percentage=_ZERO)
            budget.categories.append(row)
        row.position = position
        row.allocated = budget_in.categories[category]

    _sync_allocations(budget, ALLOCATION_OCCASION, budget_in.occasions)
    _sync_allocations(budget, ALLOCATION_BRAND, budget_in.brands)


def _sync_allocations(budget: BudgetModel, kind: str, wanted: Tuple[Allocation, ...]) -> None:
    """Update rows in place by label key; rows for dropped labels are removed."""
    current = {row.label_key: row for row in budget.allocations if row.kind == kind}
    for position, alloc in enumerate(wanted):
        row = current.pop(alloc.key, None)
        if row is None:
            row = BudgetAllocationModel(kind=kind, label_key=alloc.key, spent=_ZERO)
            budget.allocations.append(row)
        row.label = alloc.label
        row.position = position
        row.allocated = alloc.allocated
        row.priority = alloc.priority
        row.target_date = alloc.target_date

    for row in current.values():
        budget.allocations.remove(row)


class CreateOrUpdateBudgetUseCase:
    """
    Use case: create the budget for (user, type, period start), or reconfigure it

    On update, total, allocations and thresholds are replaced and the budget
    is recomputed, alerts evaluated and status re-derived in the same write.
    """

    def __init__(self, db: Session, max_retries: int | None = None):
        self.db = db
        self.event_repo = EventLogRepository(db)
        self.engine = BudgetEngine(db)
        self.max_retries = get_settings().APPEND_MAX_RETRIES if max_retries is None else max_retries

    def execute(
        self,
        user_id: int,
        data: Mapping[str, Any],
        now: datetime | None = None,
        actor_user_id: int | None = None,
    ) -> BudgetModel:
        """
        Raises:
            ValidationError: malformed configuration
            ConflictError: concurrent writers kept winning
        """
        budget_in = parse_budget_input(data)
        now = now or local_now()

        budget = commit_with_retry(
            self.db, None, self.max_retries,
            lambda: self._upsert(user_id, budget_in, now, actor_user_id),
        )
        logger.info(
            "Budget %d saved for user %d (%s %s - %s)",
            budget.id, user_id, budget_in.period.budget_type, budget_in.period.start, budget_in.period.end,
        )
        return budget

    def _upsert(
        self,
        user_id: int,
        budget_in: BudgetInput,
        now: datetime,
        actor_user_id: int | None,
    ) -> BudgetModel:
        budget = (
            self.db.query(BudgetModel)
            .filter(
                BudgetModel.user_id == user_id,
                BudgetModel.budget_type == budget_in.period.budget_type,
                BudgetModel.period_start == budget_in.period.start,
            )
            .first()
        )

        if budget is None:
            budget = BudgetModel(
                user_id=user_id,
                budget_type=budget_in.period.budget_type,
                period_start=budget_in.period.start,
                status=STATUS_ACTIVE,
                alert_level=None,
                total_spent=_ZERO,
                remaining_budget=budget_in.total_amount,
                percentage_used=_ZERO,
                average_spending_per_day=_ZERO,
                projected_spending=_ZERO,
                transaction_count=0,
            )
            _apply_input(budget, budget_in)
            self.db.add(budget)
            self.db.flush()
            self.event_repo.append_event(
                user_id=user_id,
                event_type="budget_created",
                payload=Budget.create(
                    budget.id, user_id, budget_in.period, budget_in.total_amount, budget_in.currency,
                ),
                actor_user_id=actor_user_id,
            )
        else:
            _apply_input(budget, budget_in)
            self.db.flush()
            self.event_repo.append_event(
                user_id=user_id,
                event_type="budget_updated",
                payload=Budget.update(budget.id, budget_in.total_amount, budget.version),
                actor_user_id=actor_user_id,
            )

        self.engine.sync(budget, now, actor_user_id)
        return budget


class ChangeBudgetStatusUseCase:
    """
    Use case: operator status change (pause, resume, cancel)

    Resuming re-runs the automatic transition immediately, so a budget whose
    period ended while paused comes back as completed.
    """

    def __init__(self, db: Session):
        self.db = db
        self.engine = BudgetEngine(db)

    def execute(
        self,
        user_id: int,
        budget_id: int,
        status: str,
        now: datetime | None = None,
        actor_user_id: int | None = None,
    ) -> BudgetModel:
        now = now or local_now()

        def change() -> BudgetModel:
            budget = get_budget(self.db, user_id, budget_id=budget_id)
            lifecycle.check_manual_transition(budget.status, status)
            self.engine.record_status_change(budget, status, "operator", actor_user_id)
            if status == STATUS_ACTIVE:
                self.engine.sync(budget, now, actor_user_id)
            self.db.flush()
            return budget

        return commit_with_retry(self.db, budget_id, 1, change)


class AcknowledgeAlertUseCase:
    """Use case: mark a fired notification as acknowledged (idempotent)"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        budget_id: int,
        notification_id: int,
        actor_user_id: int | None = None,
    ) -> BudgetNotificationModel:
        budget = get_budget(self.db, user_id, budget_id=budget_id)

        notification = (
            self.db.query(BudgetNotificationModel)
            .filter(
                BudgetNotificationModel.id == notification_id,
                BudgetNotificationModel.budget_id == budget.id,
            )
            .first()
        )
        if notification is None:
            raise NotFoundError("Notification", notification_id)

        if notification.acknowledged:
            return notification

        notification.acknowledged = True
        self.event_repo.append_event(
            user_id=budget.user_id,
            event_type="budget_alert_acknowledged",
            payload=Budget.acknowledge_alert(budget.id, notification.id),
            actor_user_id=actor_user_id,
        )
        self.db.commit()
        return notification


class RefreshBudgetUseCase:
    """
    Use case: re-derive projection, alerts and status as of an instant

    Nothing in the ledger changes; this catches up time-driven state such as
    a period that ended since the last write.
    """

    def __init__(self, db: Session, max_retries: int | None = None):
        self.db = db
        self.engine = BudgetEngine(db)
        self.max_retries = get_settings().APPEND_MAX_RETRIES if max_retries is None else max_retries

    def execute(self, budget_id: int, now: datetime | None = None) -> SyncResult:
        now = now or local_now()

        def refresh() -> SyncResult:
            budget = self.db.get(BudgetModel, budget_id)
            if budget is None:
                raise NotFoundError("Budget", budget_id)
            return self.engine.sync(budget, now)

        return commit_with_retry(self.db, budget_id, self.max_retries, refresh)


def refresh_active_budgets(db: Session, now: datetime | None = None) -> Dict[str, int]:
    """
    Refresh every active budget

    Returns:
        counters: checked, status_changed, alerts_raised, conflicts
    """
    now = now or local_now()
    budget_ids = [
        row.id for row in
        db.query(BudgetModel.id).filter(BudgetModel.status == STATUS_ACTIVE).order_by(BudgetModel.id).all()
    ]

    stats = {"checked": 0, "status_changed": 0, "alerts_raised": 0, "conflicts": 0}
    use_case = RefreshBudgetUseCase(db)
    for budget_id in budget_ids:
        try:
            result = use_case.execute(budget_id, now)
        except ConflictError:
            # A concurrent writer just synced this budget itself
            logger.warning("Budget %d skipped: concurrent modification", budget_id)
            stats["conflicts"] += 1
            continue
        stats["checked"] += 1
        if result.status_changed:
            stats["status_changed"] += 1
        stats["alerts_raised"] += len(result.notifications)

    logger.info(
        "Refreshed %d active budgets: %d status changes, %d alerts, %d conflicts",
        stats["checked"], stats["status_changed"], stats["alerts_raised"], stats["conflicts"],
    )
    return stats
