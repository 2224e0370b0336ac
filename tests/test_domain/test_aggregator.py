"""
Tests for the budget aggregator (recompute)
"""
from datetime import date
from decimal import Decimal

from wardrobe.domain.aggregator import recompute, percent_of
from wardrobe.domain.budget import (
    Allocation, BudgetSnapshot, CATEGORIES, build_period, BUDGET_TYPE_ANNUAL,
)
from wardrobe.domain.ledger import LedgerEntry

_D = Decimal
_PERIOD = build_period(BUDGET_TYPE_ANNUAL, year=2025)


def _entry(amount, category="menswear", **kwargs):
    kwargs.setdefault("occurred_on", date(2025, 3, 1))
    return LedgerEntry(amount=_D(amount), category=category, **kwargs)


def _snapshot(entries=(), total="1000", **kwargs):
    return BudgetSnapshot(total_amount=_D(total), period=_PERIOD, entries=tuple(entries), **kwargs)


def test_totals_match_ledger():
    entries = [
        _entry("100", "menswear"),
        _entry("250.50", "womenswear"),
        _entry("49.50", "footwear"),
    ]

    agg = recompute(_snapshot(entries))

    assert agg.total_spent == _D("400.00")
    assert agg.remaining_budget == _D("600.00")
    assert agg.percentage_used == _D("40.0000")
    assert agg.transaction_count == 3
    assert sum(agg.category_spent.values()) == agg.total_spent
    assert agg.category_spent["womenswear"] == _D("250.50")
    assert agg.category_spent["kidswear"] == _D("0")
    assert set(agg.category_spent) == set(CATEGORIES)


def test_recompute_is_idempotent():
    snapshot = _snapshot([_entry("10", brand="Zara"), _entry("20", "kidswear", occasion="party")])

    assert recompute(snapshot) == recompute(snapshot)


def test_zero_total_gives_zero_percentage():
    agg = recompute(_snapshot([_entry("50")], total="0"))

    assert agg.percentage_used == 0
    assert agg.remaining_budget == _D("-50")
    assert agg.is_over_budget


def test_empty_ledger():
    agg = recompute(_snapshot())

    assert agg.total_spent == 0
    assert agg.transaction_count == 0
    assert agg.monthly_trend == ()
    assert agg.top_brands() == []


def test_category_percentage_is_share_of_total_and_clamped():
    snapshot = _snapshot(
        total="1000",
        category_allocations={"menswear": _D("250"), "footwear": _D("1500")},
    )

    agg = recompute(snapshot)

    assert agg.category_percentage["menswear"] == _D("25.0000")
    assert agg.category_percentage["footwear"] == _D("100")
    assert agg.category_percentage["kidswear"] == 0


def test_brands_ranked_by_amount_then_name():
    entries = [
        _entry("30", brand="Zara"),
        _entry("50", brand="H&M"),
        _entry("30", brand="Gap"),
        _entry("20"),  # no brand: not attributed
    ]

    agg = recompute(_snapshot(entries))
    top = agg.top_brands()

    assert [row["brand"] for row in top] == ["H&M", "Gap", "Zara"]
    assert top[0]["percentage"] == _D("38.46")
    assert sum(agg.brand_spent.values()) == _D("110")


def test_top_brands_limit():
    entries = [_entry(str(i + 1), brand=f"Brand {i:02d}") for i in range(12)]

    assert len(recompute(_snapshot(entries)).top_brands(limit=10)) == 10


def test_top_categories_keep_category_order_on_ties():
    agg = recompute(_snapshot([_entry("10", "footwear"), _entry("10", "menswear")]))

    ordered = [row["category"] for row in agg.top_categories()]

    assert ordered[:2] == ["menswear", "footwear"]
    assert ordered[2:] == ["womenswear", "kidswear", "accessories"]


def test_allocation_spent_matches_labels_case_insensitively():
    snapshot = _snapshot(
        [
            _entry("40", brand="zara "),
            _entry("60", brand="ZARA"),
            _entry("25", occasion="Wedding"),
        ],
        brand_allocations=(Allocation("Zara", _D("200"), "mid-range"),),
        occasion_allocations=(
            Allocation("wedding", _D("300"), "high"),
            Allocation("party", _D("100"), "low"),
        ),
    )

    agg = recompute(snapshot)

    assert agg.brand_allocation_spent == {"zara": _D("100")}
    assert agg.occasion_allocation_spent == {"wedding": _D("25"), "party": _D("0")}


def test_monthly_trend_is_chronological():
    entries = [
        _entry("10", occurred_on=date(2025, 3, 5)),
        _entry("5", occurred_on=date(2025, 1, 20)),
        _entry("7", occurred_on=date(2025, 3, 28)),
    ]

    agg = recompute(_snapshot(entries))

    assert agg.monthly_trend == ((2025, 1, _D("5")), (2025, 3, _D("17")))


def test_average_item_cost_per_family():
    entries = [
        _entry("10", item_type="menswear"),
        _entry("21", item_type="menswear"),
        _entry("99", item_type="stylecombo"),
    ]

    agg = recompute(_snapshot(entries))

    assert agg.average_item_cost["menswear"] == _D("15.50")
    assert agg.average_item_cost["womenswear"] == 0
    assert "stylecombo" not in agg.average_item_cost


def test_percent_of_rounds_half_up():
    assert percent_of(_D("1"), _D("3")) == _D("33.3333")
    assert percent_of(_D("2"), _D("3"), _D("0.01")) == _D("66.67")
    assert percent_of(_D("5"), _D("0")) == 0
