"""
Spending reports over the item-family stores.

Category, brand, event-scoped and monthly reports are a fan-out over the
menswear/womenswear/kidswear stores (and the combo store for events) merged
in memory. A failed store read aborts the whole report with DependencyError.
"""
import calendar
import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy.orm import Session

from wardrobe.application.budget_engine import local_now
from wardrobe.application.budgets import find_budget_for_year
from wardrobe.domain.aggregator import percent_of
from wardrobe.domain.budget import ITEM_FAMILIES
from wardrobe.domain.errors import ValidationError
from wardrobe.infrastructure.catalog import ItemCatalog, PurchaseRecord, ComboRecord

logger = logging.getLogger(__name__)

REPORT_FORMATS = ("json", "pdf", "excel")

_ZERO = Decimal("0")
_MONEY_Q = Decimal("0.01")
_MONTHS_PER_YEAR = 12


def money(value: Decimal) -> Decimal:
    return value.quantize(_MONEY_Q, rounding=ROUND_HALF_UP)


def scope_range(year: int, month: int | None = None) -> Tuple[date, date]:
    """
    [start, end) dates of a year or of one month of it

    Raises:
        ValidationError: year or month out of range
    """
    if not 1900 <= year <= 9998:
        raise ValidationError(f"year out of range: {year}")
    if month is None:
        return date(year, 1, 1), date(year + 1, 1, 1)
    if not 1 <= month <= 12:
        raise ValidationError(f"month must be between 1 and 12: {month}")
    if month == 12:
        return date(year, 12, 1), date(year + 1, 1, 1)
    return date(year, month, 1), date(year, month + 1, 1)


def group_purchases(records: Iterable[PurchaseRecord]) -> List[Dict[str, Any]]:
    """{group, total_spent, item_count, average_price} per group key, sorted by key."""
    totals: Dict[str, Decimal] = {}
    counts: Dict[str, int] = {}
    for r in records:
        totals[r.group_key] = totals.get(r.group_key, _ZERO) + r.final_price
        counts[r.group_key] = counts.get(r.group_key, 0) + 1

    return [
        {
            "group": key,
            "total_spent": totals[key],
            "item_count": counts[key],
            "average_price": money(totals[key] / counts[key]),
        }
        for key in sorted(totals)
    ]


def monthly_breakdown(records: Iterable[PurchaseRecord]) -> List[Dict[str, Any]]:
    """Per calendar month merged across families; months without purchases are omitted."""
    totals: Dict[int, Decimal] = {}
    counts: Dict[int, int] = {}
    for r in records:
        m = r.purchase_date.month
        totals[m] = totals.get(m, _ZERO) + r.final_price
        counts[m] = counts.get(m, 0) + 1

    return [
        {
            "month": m,
            "month_name": calendar.month_name[m],
            "total": totals[m],
            "item_count": counts[m],
        }
        for m in sorted(totals)
    ]


def _flatten(by_family: Dict[str, List[PurchaseRecord]]) -> List[PurchaseRecord]:
    return [r for family in ITEM_FAMILIES for r in by_family.get(family, [])]


def _item_row(r: PurchaseRecord) -> Dict[str, Any]:
    return {
        "family": r.family,
        "item_id": r.item_id,
        "name": r.name,
        "category": r.group_key,
        "brand": r.brand,
        "final_price": r.final_price,
        "purchase_date": r.purchase_date.isoformat(),
    }


def _combo_row(c: ComboRecord) -> Dict[str, Any]:
    return {
        "combo_id": c.combo_id,
        "name": c.name,
        "event_tag": c.event_tag,
        "created_at": c.created_at.isoformat(),
        "total_price": c.total_price,
        "items": {family: list(ids) for family, ids in c.items.items()},
    }


class SpendingReportService:
    """Build the spending report for a (user, year, month?, brand?, event?) scope."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = ItemCatalog(db)

    def generate(
        self,
        user_id: int,
        year: int,
        month: int | None = None,
        brand: str | None = None,
        event: str | None = None,
        fmt: str = "json",
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: bad year, month or format
            DependencyError: an item or combo store could not be read
        """
        fmt = (fmt or "json").lower()
        if fmt not in REPORT_FORMATS:
            raise ValidationError(f"Unknown report format: {fmt}. Use one of: {', '.join(REPORT_FORMATS)}")
        date_from, date_to = scope_range(year, month)
        now = now or local_now()

        by_family = self.catalog.purchases_by_family(user_id, date_from, date_to)
        records = _flatten(by_family)

        total_spending = sum((r.final_price for r in records), _ZERO)
        total_items = len(records)

        report = {
            "year": year,
            "month": month,
            "format": fmt,
            "generated_at": now.isoformat(),
            "summary": {
                "overview": {
                    "total_spending": total_spending,
                    "total_items": total_items,
                    "average_per_item": money(total_spending / total_items) if total_items else money(_ZERO),
                    "average_per_month": money(total_spending / _MONTHS_PER_YEAR),
                },
                "category_breakdown": {
                    "by_family": {family: group_purchases(by_family[family]) for family in ITEM_FAMILIES},
                    "merged": group_purchases(records),
                },
                "monthly_breakdown": monthly_breakdown(records),
            },
            "brand_report": None,
            "event_report": None,
        }

        if brand and brand.strip():
            report["brand_report"] = self._brand_report(user_id, brand.strip(), date_from, date_to)
        if event and event.strip():
            report["event_report"] = self._event_report(user_id, event.strip(), year)

        logger.info(
            "Spending report for user %d, %s%s: %d items, %s total",
            user_id, year, f"-{month:02d}" if month else "", total_items, total_spending,
        )
        return report

    def _brand_report(self, user_id: int, brand: str, date_from: date, date_to: date) -> Dict[str, Any]:
        records = _flatten(self.catalog.purchases_by_family(user_id, date_from, date_to, brand_contains=brand))
        return {
            "brand": brand,
            "items": [_item_row(r) for r in records],
            "item_count": len(records),
            "total_spent": sum((r.final_price for r in records), _ZERO),
        }

    def _event_report(self, user_id: int, event: str, year: int) -> Dict[str, Any]:
        combos = self.catalog.combos(
            user_id, datetime(year, 1, 1), datetime(year + 1, 1, 1), event_contains=event,
        )
        return {
            "event": event,
            "combos": [_combo_row(c) for c in combos],
            "combo_count": len(combos),
            "total_spent": sum((c.total_price for c in combos), _ZERO),
        }


class SpendingSummaryService:
    """Spend of a year (or month) against the user's budget for that year."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = ItemCatalog(db)

    def get_summary(self, user_id: int, year: int, month: int | None = None) -> Dict[str, Any]:
        date_from, date_to = scope_range(year, month)
        by_family = self.catalog.purchases_by_family(user_id, date_from, date_to)

        total_spending = sum((r.final_price for r in _flatten(by_family)), _ZERO)

        budget = find_budget_for_year(self.db, user_id, year)
        alerts: List[Dict[str, Any]] = []
        if budget is None:
            comparison: Dict[str, Any] = {"has_budget": False}
        else:
            total_budget = budget.total_amount
            remaining = total_budget - total_spending
            spent_percentage = percent_of(total_spending, total_budget, _MONEY_Q)
            is_over = total_spending > total_budget
            comparison = {
                "has_budget": True,
                "total_budget": total_budget,
                "remaining_budget": remaining,
                "spent_percentage": spent_percentage,
                "is_over_budget": is_over,
            }

            if spent_percentage >= budget.alert_threshold:
                alerts.append({
                    "type": "warning",
                    "message": f"You've spent {spent_percentage:.1f}% of your budget",
                    "threshold": budget.alert_threshold,
                })
            if is_over:
                over_amount = total_spending - total_budget
                alerts.append({
                    "type": "danger",
                    "message": f"You've exceeded your budget by {over_amount}",
                    "over_amount": over_amount,
                })

        return {
            "period": {"year": year, "month": month},
            "total_spending": total_spending,
            "spending_by_category": {family: group_purchases(by_family[family]) for family in ITEM_FAMILIES},
            "budget_comparison": comparison,
            "alerts": alerts,
        }
