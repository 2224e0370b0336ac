"""
Budget ledger report: one budget's figures recomputed from its own ledger.
"""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.orm import Session

from wardrobe.config import get_settings
from wardrobe.application.budget_engine import (
    ALLOCATION_BRAND, ALLOCATION_OCCASION, local_now, period_of, snapshot_of,
)
from wardrobe.application.budgets import get_budget
from wardrobe.domain.aggregator import recompute
from wardrobe.domain.projection import project
from wardrobe.infrastructure.db.models import BudgetTransactionModel
from wardrobe.infrastructure.ledger import LedgerRepository


def transaction_row(row: BudgetTransactionModel) -> Dict[str, Any]:
    return {
        "sequence": row.sequence,
        "item_id": row.item_id,
        "item_type": row.item_type,
        "item_name": row.item_name,
        "amount": row.amount,
        "category": row.category,
        "brand": row.brand,
        "occasion": row.occasion,
        "date": row.occurred_on.isoformat(),
        "store": row.store,
        "notes": row.notes,
        "payment_method": row.payment_method,
    }


class BudgetLedgerReportService:
    """Summary, breakdowns, recent activity and projection for one budget."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)

    def build(self, user_id: int, budget_id: int, now: datetime | None = None) -> Dict[str, Any]:
        settings = get_settings()
        now = now or local_now()

        budget = get_budget(self.db, user_id, budget_id=budget_id)
        period = period_of(budget)
        agg = recompute(snapshot_of(budget, self.ledger.entries(budget.id)))
        projection = project(agg.total_spent, period, now)

        return {
            "summary": {
                "budget_id": budget.id,
                "name": budget.name,
                "budget_type": budget.budget_type,
                "period": {"start": period.start.isoformat(), "end": period.end.isoformat()},
                "total_budget": budget.total_amount,
                "currency": budget.currency,
                "total_spent": agg.total_spent,
                "remaining_budget": agg.remaining_budget,
                "percentage_used": agg.percentage_used,
                "status": budget.status,
                "days_remaining": max(0, period.days_remaining(now)),
                "is_over_budget": agg.is_over_budget,
                "transaction_count": agg.transaction_count,
            },
            "category_breakdown": agg.top_categories(),
            "brand_breakdown": agg.top_brands(settings.REPORT_TOP_BRANDS),
            "occasion_budgets": [
                {"occasion": a.label, "allocated": a.allocated,
                 "spent": agg.occasion_allocation_spent.get(a.label_key, a.spent), "priority": a.priority,
                 "target_date": a.target_date.isoformat() if a.target_date else None}
                for a in budget.allocations if a.kind == ALLOCATION_OCCASION
            ],
            "brand_budgets": [
                {"brand": a.label, "allocated": a.allocated,
                 "spent": agg.brand_allocation_spent.get(a.label_key, a.spent), "priority": a.priority}
                for a in budget.allocations if a.kind == ALLOCATION_BRAND
            ],
            "monthly_trend": [
                {"year": y, "month": m, "amount": amount} for (y, m, amount) in agg.monthly_trend
            ],
            "average_item_cost": agg.average_item_cost,
            "recent_transactions": [
                transaction_row(r)
                for r in self.ledger.recent(budget.id, settings.REPORT_RECENT_TRANSACTIONS)
            ],
            "projection": {
                "as_of": now.isoformat(),
                "days_elapsed": projection.days_elapsed,
                "total_days": projection.total_days,
                "average_spending_per_day": projection.average_per_day,
                "projected_spending": projection.projected_spending,
            },
        }
