"""
Budget aggregator: derived spending figures from the ledger.

recompute() is a pure function of the snapshot's entries, total amount and
allocation tables. No I/O, no clock, no mutation of its input, so calling it
twice on the same ledger gives equal results and it is safe on any thread.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Tuple

from wardrobe.domain.budget import CATEGORIES, ITEM_FAMILIES, BudgetSnapshot, normalize_label

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_PCT_Q = Decimal("0.0001")
_SHARE_Q = Decimal("0.01")


def percent_of(part: Decimal, whole: Decimal, quantum: Decimal = _PCT_Q) -> Decimal:
    """100 * part / whole rounded half-up; 0 when whole is 0."""
    if not whole:
        return _ZERO.quantize(quantum)
    return (part * _HUNDRED / whole).quantize(quantum, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class BudgetAggregates:
    total_spent: Decimal
    remaining_budget: Decimal
    percentage_used: Decimal
    transaction_count: int
    category_spent: Dict[str, Decimal] = field(default_factory=dict)
    category_percentage: Dict[str, Decimal] = field(default_factory=dict)
    brand_spent: Dict[str, Decimal] = field(default_factory=dict)
    occasion_spent: Dict[str, Decimal] = field(default_factory=dict)
    brand_allocation_spent: Dict[str, Decimal] = field(default_factory=dict)
    occasion_allocation_spent: Dict[str, Decimal] = field(default_factory=dict)
    monthly_trend: Tuple[Tuple[int, int, Decimal], ...] = ()
    average_item_cost: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def is_over_budget(self) -> bool:
        return self.remaining_budget < 0

    def top_categories(self) -> List[dict]:
        """All five categories with share of spend, biggest first."""
        rows = [
            {
                "category": cat,
                "amount": self.category_spent[cat],
                "percentage": percent_of(self.category_spent[cat], self.total_spent, _SHARE_Q),
            }
            for cat in CATEGORIES
        ]
        # stable sort keeps CATEGORIES order among equal amounts
        rows.sort(key=lambda r: r["amount"], reverse=True)
        return rows

    def top_brands(self, limit: int = 10) -> List[dict]:
        rows = [
            {
                "brand": brand,
                "amount": amount,
                "percentage": percent_of(amount, self.total_spent, _SHARE_Q),
            }
            for brand, amount in self.brand_spent.items()
        ]
        rows.sort(key=lambda r: (-r["amount"], r["brand"]))
        return rows[:limit]


def recompute(snapshot: BudgetSnapshot) -> BudgetAggregates:
    """
    Recompute every derived spending figure from the ledger

    Args:
        snapshot: budget state (entries, total amount, allocations)

    Returns:
        BudgetAggregates; equal snapshots always give equal aggregates

    Example:
        >>> agg = recompute(snapshot)
        >>> agg.total_spent == sum(e.amount for e in snapshot.entries)
        True
    """
    entries = snapshot.entries
    total_amount = snapshot.total_amount

    total_spent = sum((e.amount for e in entries), _ZERO)

    category_spent = {cat: _ZERO for cat in CATEGORIES}
    brand_spent: Dict[str, Decimal] = {}
    occasion_spent: Dict[str, Decimal] = {}
    brand_keyed: Dict[str, Decimal] = {}
    occasion_keyed: Dict[str, Decimal] = {}
    monthly: Dict[Tuple[int, int], Decimal] = {}
    family_totals = {fam: _ZERO for fam in ITEM_FAMILIES}
    family_counts = {fam: 0 for fam in ITEM_FAMILIES}

    for e in entries:
        if e.category in category_spent:
            category_spent[e.category] += e.amount

        if e.brand:
            brand_spent[e.brand] = brand_spent.get(e.brand, _ZERO) + e.amount
            key = normalize_label(e.brand)
            brand_keyed[key] = brand_keyed.get(key, _ZERO) + e.amount

        if e.occasion:
            occasion_spent[e.occasion] = occasion_spent.get(e.occasion, _ZERO) + e.amount
            key = normalize_label(e.occasion)
            occasion_keyed[key] = occasion_keyed.get(key, _ZERO) + e.amount

        bucket = (e.occurred_on.year, e.occurred_on.month)
        monthly[bucket] = monthly.get(bucket, _ZERO) + e.amount

        if e.item_type in family_totals:
            family_totals[e.item_type] += e.amount
            family_counts[e.item_type] += 1

    category_percentage = {
        cat: min(_HUNDRED, percent_of(snapshot.category_allocations.get(cat, _ZERO), total_amount))
        for cat in CATEGORIES
    }

    average_item_cost = {
        fam: (family_totals[fam] / family_counts[fam]).quantize(_SHARE_Q, rounding=ROUND_HALF_UP)
        if family_counts[fam] else _ZERO
        for fam in ITEM_FAMILIES
    }

    return BudgetAggregates(
        total_spent=total_spent,
        remaining_budget=total_amount - total_spent,
        percentage_used=percent_of(total_spent, total_amount),
        transaction_count=len(entries),
        category_spent=category_spent,
        category_percentage=category_percentage,
        brand_spent=dict(sorted(brand_spent.items())),
        occasion_spent=dict(sorted(occasion_spent.items())),
        brand_allocation_spent={
            a.key: brand_keyed.get(a.key, _ZERO) for a in snapshot.brand_allocations
        },
        occasion_allocation_spent={
            a.key: occasion_keyed.get(a.key, _ZERO) for a in snapshot.occasion_allocations
        },
        monthly_trend=tuple((y, m, monthly[(y, m)]) for (y, m) in sorted(monthly)),
        average_item_cost=average_item_cost,
    )
