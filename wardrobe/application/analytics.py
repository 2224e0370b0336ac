"""
Budget analytics and future-purchase planning against the current-year budget.

Both read current-year spend from the item-family stores, not from a budget
ledger, so they reflect everything the user bought this year.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Sequence

from sqlalchemy.orm import Session

from wardrobe.application.budget_engine import local_now
from wardrobe.application.budgets import find_budget_for_year
from wardrobe.application.spending_report import (
    group_purchases, monthly_breakdown, money, scope_range,
)
from wardrobe.domain.aggregator import percent_of
from wardrobe.domain.budget import ITEM_FAMILIES
from wardrobe.domain.errors import NotFoundError, ValidationError
from wardrobe.domain.ledger import parse_amount
from wardrobe.infrastructure.catalog import ItemCatalog, PurchaseRecord

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_UTILIZATION_WARNING = Decimal("90")
_CAUTION_SHARE = Decimal("0.5")


def _year_purchases(catalog: ItemCatalog, user_id: int, year: int) -> List[PurchaseRecord]:
    date_from, date_to = scope_range(year)
    by_family = catalog.purchases_by_family(user_id, date_from, date_to)
    return [r for family in ITEM_FAMILIES for r in by_family[family]]


class BudgetAnalyticsService:
    """Efficiency, trends and recommendations for the current-year budget."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = ItemCatalog(db)

    def build(self, user_id: int, now: datetime | None = None) -> Dict[str, Any]:
        now = now or local_now()

        budget = find_budget_for_year(self.db, user_id, now.year)
        if budget is None:
            return self._empty()

        records = _year_purchases(self.catalog, user_id, now.year)
        total_spent = sum((r.final_price for r in records), _ZERO)
        total_budget = budget.total_amount

        utilization = percent_of(total_spent, total_budget, Decimal("0.01"))
        months_elapsed = now.month
        projected = money(total_spent / months_elapsed * 12)

        recommendations: List[Dict[str, str]] = []
        if utilization > _UTILIZATION_WARNING:
            recommendations.append({
                "type": "warning",
                "message": "You've used over 90% of your annual budget. Consider reducing spending.",
            })
        if projected > total_budget:
            recommendations.append({
                "type": "alert",
                "message": (
                    f"At the current rate you will spend {projected} this year, "
                    f"exceeding your budget of {total_budget}."
                ),
            })

        return {
            "budget_efficiency": {
                "total_budget": total_budget,
                "total_spent": total_spent,
                "remaining_budget": total_budget - total_spent,
                "utilization_rate": utilization,
                "projected_year_end_spending": projected,
            },
            "spending_trends": monthly_breakdown(records),
            "category_analysis": group_purchases(records),
            "recommendations": recommendations,
        }

    @staticmethod
    def _empty() -> Dict[str, Any]:
        return {
            "budget_efficiency": {},
            "spending_trends": [],
            "category_analysis": [],
            "recommendations": [],
        }


class PlanFutureBudgetUseCase:
    """
    Use case: check whether a planned event purchase fits the remaining budget

    The plan is computed, not stored.
    """

    def __init__(self, db: Session):
        self.db = db
        self.catalog = ItemCatalog(db)

    def execute(
        self,
        user_id: int,
        event: str,
        estimated_budget: Any,
        target_date: date | str,
        items: Sequence[Mapping[str, Any]] | None = None,
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: missing event, bad amount or date
            NotFoundError: the user has no budget for the current year
            DependencyError: an item store could not be read
        """
        now = now or local_now()

        event = (event or "").strip()
        if not event:
            raise ValidationError("event is required")
        estimated = parse_amount(estimated_budget)
        if isinstance(target_date, str):
            try:
                target_date = date.fromisoformat(target_date[:10])
            except ValueError:
                raise ValidationError(f"target_date is not an ISO date: {target_date!r}")
        elif isinstance(target_date, datetime):
            target_date = target_date.date()
        if target_date < now.date():
            raise ValidationError("target_date must not be in the past")

        planned_items = []
        for item in items or []:
            if not isinstance(item, Mapping):
                raise ValidationError("items must be objects")
            planned = dict(item)
            if planned.get("estimated_price") is not None:
                planned["estimated_price"] = parse_amount(planned["estimated_price"])
            planned_items.append(planned)

        budget = find_budget_for_year(self.db, user_id, now.year)
        if budget is None:
            raise NotFoundError("Budget", f"for {now.year}")

        current_spending = sum(
            (r.final_price for r in _year_purchases(self.catalog, user_id, now.year)), _ZERO,
        )
        remaining = budget.total_amount - current_spending
        can_afford = remaining >= estimated

        recommendations: List[Dict[str, Any]] = []
        if not can_afford:
            shortfall = estimated - remaining
            recommendations.append({
                "type": "warning",
                "message": f"This event may exceed your remaining budget by {shortfall}.",
                "shortfall": shortfall,
            })
        if estimated > remaining * _CAUTION_SHARE:
            recommendations.append({
                "type": "caution",
                "message": "This event will use more than half of your remaining budget.",
            })

        logger.info(
            "Plan for user %d: %s %s by %s (remaining %s, affordable=%s)",
            user_id, event, estimated, target_date, remaining, can_afford,
        )
        return {
            "event": event,
            "estimated_budget": estimated,
            "target_date": target_date.isoformat(),
            "items": planned_items,
            "current_budget_status": {
                "total_budget": budget.total_amount,
                "current_spending": current_spending,
                "remaining_budget": remaining,
                "can_afford": can_afford,
            },
            "recommendations": recommendations,
        }
