"""
Budget domain entity

Value objects describing a budget period, its allocations and alert
configuration, plus event payload builders for the audit event log.
Spending figures are never stored here as truth: they come from
wardrobe.domain.aggregator.recompute().
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Tuple

from wardrobe.domain.errors import ValidationError


# Fixed spend buckets, in display order
CATEGORIES = ("menswear", "womenswear", "kidswear", "accessories", "footwear")

ITEM_TYPES = ("menswear", "womenswear", "kidswear", "stylecombo")
ITEM_FAMILIES = ("menswear", "womenswear", "kidswear")

BUDGET_TYPE_MONTHLY = "monthly"
BUDGET_TYPE_QUARTERLY = "quarterly"
BUDGET_TYPE_ANNUAL = "annual"
BUDGET_TYPE_EVENT = "event-based"
BUDGET_TYPE_CATEGORY = "category-based"
BUDGET_TYPES = (
    BUDGET_TYPE_MONTHLY,
    BUDGET_TYPE_QUARTERLY,
    BUDGET_TYPE_ANNUAL,
    BUDGET_TYPE_EVENT,
    BUDGET_TYPE_CATEGORY,
)

CURRENCIES = ("USD", "EUR", "GBP", "LKR", "CAD", "AUD")

STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_EXCEEDED = "exceeded"
STATUS_PAUSED = "paused"
STATUS_CANCELLED = "cancelled"
STATUSES = (STATUS_ACTIVE, STATUS_COMPLETED, STATUS_EXCEEDED, STATUS_PAUSED, STATUS_CANCELLED)

OCCASIONS = (
    "wedding", "interview", "business-meeting", "party", "vacation", "work",
    "formal-event", "everyday", "special-event", "holiday-shopping",
    "back-to-school", "seasonal-update",
)
OCCASION_PRIORITIES = ("low", "medium", "high", "urgent")
BRAND_PRIORITIES = ("luxury", "premium", "mid-range", "budget")

RECURRING_FREQUENCIES = ("monthly", "quarterly", "annually")

NAME_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 500


def normalize_label(value: str | None) -> str:
    """Key used to match brand/occasion labels: trimmed, case-insensitive."""
    return (value or "").strip().casefold()


@dataclass(frozen=True)
class BudgetPeriod:
    """
    Inclusive calendar-date range of a budget.

    end is treated as the end of its day, so a Jan 1 - Jan 31 period
    is 31 days long.
    """
    start: date
    end: date
    budget_type: str
    year: int | None = None
    month: int | None = None
    quarter: int | None = None

    @property
    def total_days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, moment: date | datetime) -> bool:
        day = moment.date() if isinstance(moment, datetime) else moment
        return self.start <= day <= self.end

    def has_ended(self, moment: date | datetime) -> bool:
        day = moment.date() if isinstance(moment, datetime) else moment
        return day > self.end

    def days_remaining(self, moment: date | datetime) -> int:
        day = moment.date() if isinstance(moment, datetime) else moment
        return (self.end - day).days

    def label(self) -> str:
        if self.budget_type == BUDGET_TYPE_ANNUAL:
            return f"Annual budget {self.year}"
        if self.budget_type == BUDGET_TYPE_MONTHLY:
            return f"{calendar.month_name[self.month]} {self.year} budget"
        if self.budget_type == BUDGET_TYPE_QUARTERLY:
            return f"Q{self.quarter} {self.year} budget"
        return f"Budget {self.start.isoformat()} - {self.end.isoformat()}"


def build_period(
    budget_type: str,
    year: int | None = None,
    month: int | None = None,
    quarter: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> BudgetPeriod:
    """
    Derive the date range for a budget type.

    Raises:
        ValidationError: unknown type, missing or out-of-range year/month/quarter,
            end before start
    """
    if budget_type not in BUDGET_TYPES:
        raise ValidationError(f"Unknown budget type: {budget_type}")

    if budget_type in (BUDGET_TYPE_ANNUAL, BUDGET_TYPE_MONTHLY, BUDGET_TYPE_QUARTERLY):
        if year is None:
            raise ValidationError(f"year is required for a {budget_type} budget")
        if not 1900 <= year <= 9999:
            raise ValidationError(f"year out of range: {year}")

    if budget_type == BUDGET_TYPE_ANNUAL:
        return BudgetPeriod(date(year, 1, 1), date(year, 12, 31), budget_type, year=year)

    if budget_type == BUDGET_TYPE_MONTHLY:
        if month is None or not 1 <= month <= 12:
            raise ValidationError("month (1-12) is required for a monthly budget")
        last_day = calendar.monthrange(year, month)[1]
        return BudgetPeriod(
            date(year, month, 1), date(year, month, last_day), budget_type,
            year=year, month=month,
        )

    if budget_type == BUDGET_TYPE_QUARTERLY:
        if quarter is None or not 1 <= quarter <= 4:
            raise ValidationError("quarter (1-4) is required for a quarterly budget")
        first_month = (quarter - 1) * 3 + 1
        last_month = first_month + 2
        last_day = calendar.monthrange(year, last_month)[1]
        return BudgetPeriod(
            date(year, first_month, 1), date(year, last_month, last_day), budget_type,
            year=year, quarter=quarter,
        )

    # event-based / category-based: explicit range
    if start_date is None or end_date is None:
        raise ValidationError(f"start_date and end_date are required for a {budget_type} budget")
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    return BudgetPeriod(start_date, end_date, budget_type, year=year or start_date.year)


@dataclass(frozen=True)
class Allocation:
    """Labelled sub-allocation (occasion or brand budget line)."""
    label: str
    allocated: Decimal
    priority: str
    target_date: date | None = None

    @property
    def key(self) -> str:
        return normalize_label(self.label)


@dataclass(frozen=True)
class AlertThresholds:
    alerts_enabled: bool = True
    warning_percent: Decimal = Decimal("75")
    warning_enabled: bool = True
    danger_percent: Decimal = Decimal("90")
    danger_enabled: bool = True
    exceeded_enabled: bool = True


@dataclass(frozen=True)
class BudgetSnapshot:
    """
    Immutable view of everything the pure engine functions read.

    Built from the persisted budget by the application layer
    (see wardrobe.application.budget_engine.snapshot_of).
    """
    total_amount: Decimal
    period: BudgetPeriod
    currency: str = "USD"
    category_allocations: Dict[str, Decimal] = field(default_factory=dict)
    occasion_allocations: Tuple[Allocation, ...] = ()
    brand_allocations: Tuple[Allocation, ...] = ()
    entries: Tuple[Any, ...] = ()
    thresholds: AlertThresholds = AlertThresholds()
    status: str = STATUS_ACTIVE
    alert_level: str | None = None


class Budget:
    """
    Budget event payloads for the audit event log.

    Each method returns the JSON payload stored in event_log.payload_json.
    """

    @staticmethod
    def create(
        budget_id: int,
        user_id: int,
        period: BudgetPeriod,
        total_amount: Decimal,
        currency: str,
    ) -> Dict[str, Any]:
        """budget_created"""
        return {
            "budget_id": budget_id,
            "user_id": user_id,
            "budget_type": period.budget_type,
            "period_start": period.start.isoformat(),
            "period_end": period.end.isoformat(),
            "total_amount": str(total_amount),
            "currency": currency,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def update(budget_id: int, total_amount: Decimal, version: int) -> Dict[str, Any]:
        """budget_updated"""
        return {
            "budget_id": budget_id,
            "total_amount": str(total_amount),
            "version": version,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def record_transaction(
        budget_id: int,
        sequence: int,
        amount: Decimal,
        category: str,
        item_type: str | None,
        item_id: str | None,
    ) -> Dict[str, Any]:
        """budget_transaction_recorded"""
        return {
            "budget_id": budget_id,
            "sequence": sequence,
            "amount": str(amount),
            "category": category,
            "item_type": item_type,
            "item_id": item_id,
        }

    @staticmethod
    def raise_alert(budget_id: int, alert_type: str, percentage_used: Decimal) -> Dict[str, Any]:
        """budget_alert_raised"""
        return {
            "budget_id": budget_id,
            "alert_type": alert_type,
            "percentage_used": str(percentage_used),
        }

    @staticmethod
    def acknowledge_alert(budget_id: int, notification_id: int) -> Dict[str, Any]:
        """budget_alert_acknowledged"""
        return {
            "budget_id": budget_id,
            "notification_id": notification_id,
            "acknowledged_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def change_status(budget_id: int, old_status: str, new_status: str, reason: str) -> Dict[str, Any]:
        """budget_status_changed"""
        return {
            "budget_id": budget_id,
            "from": old_status,
            "to": new_status,
            "reason": reason,
        }
