"""
Budget API endpoints
"""
from datetime import date as date_type
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from wardrobe.api.deps import get_db, get_current_user_id
from wardrobe.application.analytics import BudgetAnalyticsService, PlanFutureBudgetUseCase
from wardrobe.application.budget_engine import ALLOCATION_BRAND, ALLOCATION_OCCASION
from wardrobe.application.budget_report import transaction_row
from wardrobe.application.budgets import (
    AcknowledgeAlertUseCase, ChangeBudgetStatusUseCase, CreateOrUpdateBudgetUseCase,
    RefreshBudgetUseCase, get_budget, list_budgets,
)
from wardrobe.application.transactions import RecordTransactionUseCase, list_transactions
from wardrobe.infrastructure.eventlog.repository import EventLogRepository
from wardrobe.infrastructure.db.models import BudgetModel, BudgetNotificationModel


router = APIRouter(prefix="/api/v1/budgets", tags=["budgets"])


# === Request models ===

class ThresholdRequest(BaseModel):
    percentage: int | None = None
    enabled: bool = True


class AlertsRequest(BaseModel):
    enabled: bool = True
    warning: ThresholdRequest | None = None
    danger: ThresholdRequest | None = None
    exceeded: ThresholdRequest | None = None


class OccasionBudgetRequest(BaseModel):
    occasion: str
    allocated: str = "0"  # Decimal as string
    priority: str | None = None
    target_date: date_type | None = None


class BrandBudgetRequest(BaseModel):
    brand: str
    allocated: str = "0"
    priority: str | None = None


class RecurringRequest(BaseModel):
    is_recurring: bool = False
    frequency: str | None = None
    auto_renew: bool = False
    adjustment_factor: str | None = None


class BudgetRequest(BaseModel):
    budget_type: str = "annual"
    year: int | None = None
    month: int | None = None
    quarter: int | None = None
    start_date: date_type | None = None
    end_date: date_type | None = None
    name: str | None = None
    total_budget: str  # Decimal as string
    currency: str | None = None
    category_budgets: Dict[str, str] = Field(default_factory=dict)
    occasion_budgets: List[OccasionBudgetRequest] = Field(default_factory=list)
    brand_budgets: List[BrandBudgetRequest] = Field(default_factory=list)
    alert_threshold: int | None = None
    alerts: AlertsRequest | None = None
    notes: str | None = None
    recurring: RecurringRequest | None = None


class TransactionRequest(BaseModel):
    amount: str  # Decimal as string
    category: str
    item_id: str | None = None
    item_type: str | None = None
    item_name: str | None = None
    brand: str | None = None
    occasion: str | None = None
    date: date_type | None = None
    store: str | None = None
    notes: str | None = None
    payment_method: str | None = None


class StatusRequest(BaseModel):
    status: str


class PlanRequest(BaseModel):
    event: str
    estimated_budget: str
    target_date: date_type
    items: List[Dict[str, Any]] = Field(default_factory=list)


# === Serialization ===

def notification_response(n: BudgetNotificationModel) -> Dict[str, Any]:
    return {
        "id": n.id,
        "type": n.alert_type,
        "message": n.message,
        "percentage_used": str(n.percentage_used),
        "sent_at": n.sent_at.isoformat() if n.sent_at else None,
        "acknowledged": n.acknowledged,
    }


def budget_response(b: BudgetModel) -> Dict[str, Any]:
    return {
        "id": b.id,
        "name": b.name,
        "status": b.status,
        "version": b.version,
        "period": {
            "type": b.budget_type,
            "start_date": b.period_start.isoformat(),
            "end_date": b.period_end.isoformat(),
            "year": b.period_year,
            "month": b.period_month,
            "quarter": b.period_quarter,
        },
        "total_budget": {"amount": str(b.total_amount), "currency": b.currency},
        "category_budgets": {
            c.category: {"allocated": str(c.allocated), "spent": str(c.spent), "percentage": str(c.percentage)}
            for c in b.categories
        },
        "occasion_budgets": [
            {"occasion": a.label, "allocated": str(a.allocated), "spent": str(a.spent),
             "priority": a.priority, "target_date": a.target_date.isoformat() if a.target_date else None}
            for a in b.allocations if a.kind == ALLOCATION_OCCASION
        ],
        "brand_budgets": [
            {"brand": a.label, "allocated": str(a.allocated), "spent": str(a.spent), "priority": a.priority}
            for a in b.allocations if a.kind == ALLOCATION_BRAND
        ],
        "spending": {
            "total_spent": str(b.total_spent),
            "remaining_budget": str(b.remaining_budget),
            "percentage_used": str(b.percentage_used),
            "average_spending_per_day": str(b.average_spending_per_day),
            "projected_spending": str(b.projected_spending),
            "transaction_count": b.transaction_count,
        },
        "alerts": {
            "enabled": b.alerts_enabled,
            "thresholds": {
                "warning": {"percentage": b.warning_percent, "enabled": b.warning_enabled},
                "danger": {"percentage": b.danger_percent, "enabled": b.danger_enabled},
                "exceeded": {"enabled": b.exceeded_enabled},
            },
            "active_level": b.alert_level,
            "notifications": [notification_response(n) for n in b.notifications],
        },
        "alert_threshold": b.alert_threshold,
        "notes": b.notes,
        "recurring": {
            "is_recurring": b.is_recurring,
            "frequency": b.recurring_frequency,
            "auto_renew": b.recurring_auto_renew,
            "adjustment_factor": str(b.recurring_adjustment_factor),
        },
    }


# === Endpoints ===

@router.post("")
def save_budget(
    req: BudgetRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create the budget for a period, or reconfigure the existing one"""
    budget = CreateOrUpdateBudgetUseCase(db).execute(
        user_id=user_id,
        data=req.model_dump(),
        actor_user_id=user_id,
    )
    return budget_response(budget)


@router.get("")
def get_budgets(
    status: str | None = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return [budget_response(b) for b in list_budgets(db, user_id, status)]


@router.get("/current")
def get_current_budget(
    year: int | None = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Latest budget for the year (or the latest budget overall)"""
    return budget_response(get_budget(db, user_id, year=year))


@router.get("/analytics")
def get_analytics(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return BudgetAnalyticsService(db).build(user_id)


@router.post("/plan")
def plan_future_budget(
    req: PlanRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Check a planned event purchase against the remaining budget"""
    return PlanFutureBudgetUseCase(db).execute(
        user_id=user_id,
        event=req.event,
        estimated_budget=req.estimated_budget,
        target_date=req.target_date,
        items=req.items,
    )


@router.get("/events")
def get_budget_events(
    after_id: int = 0,
    limit: int = 200,
    budget_id: int | None = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Budget audit trail of the user (or of one budget), oldest first, after a checkpoint id"""
    events = EventLogRepository(db).list_events_since(user_id, after_id, min(limit, 1000), budget_id=budget_id)
    return [
        {
            "id": e.id,
            "budget_id": e.budget_id,
            "event_type": e.event_type,
            "payload": e.payload_json,
            "occurred_at": e.occurred_at.isoformat() if e.occurred_at else None,
        }
        for e in events
    ]


@router.get("/{budget_id}")
def get_budget_by_id(
    budget_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return budget_response(get_budget(db, user_id, budget_id=budget_id))


@router.post("/{budget_id}/transactions")
def record_transaction(
    budget_id: int,
    req: TransactionRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Append a purchase; the response carries the recomputed budget"""
    recorded = RecordTransactionUseCase(db).execute(
        user_id=user_id,
        budget_id=budget_id,
        transaction=req.model_dump(),
        actor_user_id=user_id,
    )
    return {
        "sequence": recorded.sequence,
        "alerts": [notification_response(n) for n in recorded.alerts],
        "budget": budget_response(recorded.budget),
    }


@router.get("/{budget_id}/transactions")
def get_transactions(
    budget_id: int,
    limit: int | None = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return [transaction_row(r) for r in list_transactions(db, user_id, budget_id, limit)]


@router.post("/{budget_id}/status")
def change_status(
    budget_id: int,
    req: StatusRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Pause, resume or cancel a budget"""
    budget = ChangeBudgetStatusUseCase(db).execute(
        user_id=user_id,
        budget_id=budget_id,
        status=req.status,
        actor_user_id=user_id,
    )
    return budget_response(budget)


@router.post("/{budget_id}/notifications/{notification_id}/acknowledge")
def acknowledge_alert(
    budget_id: int,
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    notification = AcknowledgeAlertUseCase(db).execute(
        user_id=user_id,
        budget_id=budget_id,
        notification_id=notification_id,
        actor_user_id=user_id,
    )
    return notification_response(notification)


@router.post("/{budget_id}/refresh")
def refresh_budget(
    budget_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Re-derive projection, alerts and status as of now"""
    budget = get_budget(db, user_id, budget_id=budget_id)
    RefreshBudgetUseCase(db).execute(budget.id)
    return budget_response(get_budget(db, user_id, budget_id=budget_id))
