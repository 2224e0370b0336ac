"""
Budget engine: the derive step run by every budget mutator.

ledger -> recompute -> projection -> alert evaluation -> lifecycle transition,
applied to the persisted budget inside the caller's unit of work. Mutators
call BudgetEngine.sync() explicitly; nothing is recomputed by storage hooks.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, List, Sequence, TypeVar
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from wardrobe.config import get_settings
from wardrobe.domain import alerts as alert_engine
from wardrobe.domain import lifecycle
from wardrobe.domain.aggregator import BudgetAggregates, recompute
from wardrobe.domain.budget import (
    Allocation, AlertThresholds, Budget, BudgetPeriod, BudgetSnapshot,
)
from wardrobe.domain.errors import ConflictError
from wardrobe.domain.ledger import LedgerEntry
from wardrobe.domain.projection import project
from wardrobe.infrastructure.db.models import BudgetModel, BudgetNotificationModel, BudgetTransactionModel
from wardrobe.infrastructure.eventlog.repository import EventLogRepository
from wardrobe.infrastructure.ledger import LedgerRepository

logger = logging.getLogger(__name__)

ALLOCATION_OCCASION = "OCCASION"
ALLOCATION_BRAND = "BRAND"

T = TypeVar("T")


def local_now() -> datetime:
    """Current time in the configured application timezone."""
    return datetime.now(ZoneInfo(get_settings().TIMEZONE))


def period_of(budget: BudgetModel) -> BudgetPeriod:
    return BudgetPeriod(
        start=budget.period_start,
        end=budget.period_end,
        budget_type=budget.budget_type,
        year=budget.period_year,
        month=budget.period_month,
        quarter=budget.period_quarter,
    )


def thresholds_of(budget: BudgetModel) -> AlertThresholds:
    return AlertThresholds(
        alerts_enabled=budget.alerts_enabled,
        warning_percent=Decimal(budget.warning_percent),
        warning_enabled=budget.warning_enabled,
        danger_percent=Decimal(budget.danger_percent),
        danger_enabled=budget.danger_enabled,
        exceeded_enabled=budget.exceeded_enabled,
    )


def snapshot_of(budget: BudgetModel, entries: Sequence[LedgerEntry]) -> BudgetSnapshot:
    """Immutable engine input built from the persisted budget and its ledger."""
    return BudgetSnapshot(
        total_amount=budget.total_amount,
        period=period_of(budget),
        currency=budget.currency,
        category_allocations={c.category: c.allocated for c in budget.categories},
        occasion_allocations=tuple(
            Allocation(a.label, a.allocated, a.priority, a.target_date)
            for a in budget.allocations if a.kind == ALLOCATION_OCCASION
        ),
        brand_allocations=tuple(
            Allocation(a.label, a.allocated, a.priority, a.target_date)
            for a in budget.allocations if a.kind == ALLOCATION_BRAND
        ),
        entries=tuple(entries),
        thresholds=thresholds_of(budget),
        status=budget.status,
        alert_level=budget.alert_level,
    )


def apply_aggregates(budget: BudgetModel, agg: BudgetAggregates) -> None:
    """Write aggregator output onto the persisted budget (idempotent)."""
    budget.total_spent = agg.total_spent
    budget.remaining_budget = agg.remaining_budget
    budget.percentage_used = agg.percentage_used
    budget.transaction_count = agg.transaction_count

    for row in budget.categories:
        row.spent = agg.category_spent.get(row.category, Decimal("0"))
        row.percentage = agg.category_percentage.get(row.category, Decimal("0"))

    for row in budget.allocations:
        spent_map = (
            agg.occasion_allocation_spent if row.kind == ALLOCATION_OCCASION
            else agg.brand_allocation_spent
        )
        row.spent = spent_map.get(row.label_key, Decimal("0"))


@dataclass
class SyncResult:
    aggregates: BudgetAggregates
    notifications: List[BudgetNotificationModel] = field(default_factory=list)
    old_status: str | None = None
    new_status: str | None = None

    @property
    def status_changed(self) -> bool:
        return self.old_status != self.new_status


class BudgetEngine:
    """Runs the derive pipeline against one persisted budget."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def sync(
        self,
        budget: BudgetModel,
        now: datetime | date,
        actor_user_id: int | None = None,
    ) -> SyncResult:
        """
        Recompute aggregates, projection, alerts and status for the budget

        Flushes but never commits; the caller owns the unit of work.
        """
        snapshot = snapshot_of(budget, self.ledger.entries(budget.id))
        agg = recompute(snapshot)
        apply_aggregates(budget, agg)

        projection = project(agg.total_spent, snapshot.period, now)
        budget.average_spending_per_day = projection.average_per_day
        budget.projected_spending = projection.projected_spending

        result = SyncResult(aggregates=agg, old_status=budget.status)

        decision = alert_engine.evaluate(agg.percentage_used, snapshot.thresholds, budget.alert_level)
        budget.alert_level = decision.level
        if decision.alert is not None:
            result.notifications.append(self._notify(budget, decision.alert, now, actor_user_id))

        new_status = lifecycle.transition(
            budget.status, now, snapshot.period, agg.total_spent, budget.total_amount,
        )
        result.new_status = new_status
        if new_status != budget.status:
            self.record_status_change(budget, new_status, lifecycle.transition_reason(new_status), actor_user_id)

        self.db.flush()
        return result

    def record_status_change(
        self,
        budget: BudgetModel,
        new_status: str,
        reason: str,
        actor_user_id: int | None = None,
    ) -> None:
        old_status = budget.status
        budget.status = new_status
        self.event_repo.append_event(
            user_id=budget.user_id,
            event_type="budget_status_changed",
            payload=Budget.change_status(budget.id, old_status, new_status, reason),
            actor_user_id=actor_user_id,
        )
        logger.info("Budget %d status %s -> %s (%s)", budget.id, old_status, new_status, reason)

    def _notify(
        self,
        budget: BudgetModel,
        alert: alert_engine.Alert,
        now: datetime | date,
        actor_user_id: int | None,
    ) -> BudgetNotificationModel:
        sent_at = now if isinstance(now, datetime) else datetime.combine(now, datetime.min.time(), timezone.utc)
        notification = BudgetNotificationModel(
            alert_type=alert.alert_type,
            message=alert.message,
            percentage_used=alert.percentage_used,
            sent_at=sent_at,
            acknowledged=False,
        )
        budget.notifications.append(notification)
        self.event_repo.append_event(
            user_id=budget.user_id,
            event_type="budget_alert_raised",
            payload=Budget.raise_alert(budget.id, alert.alert_type, alert.percentage_used),
            actor_user_id=actor_user_id,
        )
        logger.info(
            "Budget %d %s alert at %s%%", budget.id, alert.alert_type, alert.percentage_used,
        )
        return notification


# Unique keys two writers can clash on when they race for the same budget
_RACE_CONSTRAINTS = {
    "uq_budget_transaction_seq": BudgetTransactionModel.__table__,
    "uq_budget_user_period": BudgetModel.__table__,
}


def _constraint_columns(name: str) -> str:
    table = _RACE_CONSTRAINTS[name]
    for constraint in table.constraints:
        if constraint.name == name:
            return ", ".join(f"{table.name}.{column.name}" for column in constraint.columns)
    return name


def is_write_race(exc: IntegrityError) -> bool:
    """
    True when the violated constraint is one of the race keys

    PostgreSQL names the constraint (psycopg diagnostics); SQLite only lists
    the clashing columns in the message.
    """
    diag = getattr(exc.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        return constraint_name in _RACE_CONSTRAINTS

    message = str(exc.orig)
    return any(
        name in message or _constraint_columns(name) in message
        for name in _RACE_CONSTRAINTS
    )


def commit_with_retry(
    db: Session,
    budget_id: int | None,
    attempts: int,
    operation: Callable[[], T],
) -> T:
    """
    Run operation() and commit, retrying the whole unit of work on conflict

    A conflict is a stale budget version (StaleDataError from the mapper's
    version check) or a clash on a unique key such as the ledger sequence.
    Each retry starts from a rolled-back session, so operation() re-reads
    the budget.

    Any other integrity violation (NOT NULL, foreign key, an unrelated unique
    key) is not a conflict and propagates after the rollback.

    Raises:
        ConflictError: every attempt conflicted
    """
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except (StaleDataError, IntegrityError) as exc:
            db.rollback()
            if isinstance(exc, IntegrityError) and not is_write_race(exc):
                raise
            logger.info(
                "Budget %s write conflict (attempt %d/%d): %s",
                budget_id, attempt, attempts, exc.__class__.__name__,
            )

    logger.warning("Budget %s write gave up after %d attempts", budget_id, attempts)
    raise ConflictError(budget_id, attempts)
