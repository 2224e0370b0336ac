"""
Tests for transaction validation
"""
import pytest
from datetime import date, datetime
from decimal import Decimal

from wardrobe.domain.errors import ValidationError
from wardrobe.domain.ledger import parse_amount, validate_transaction


@pytest.mark.parametrize("raw,expected", [
    ("49.90", Decimal("49.90")),
    (" 12,5 ", Decimal("12.5")),
    (0, Decimal("0")),
    (19.99, Decimal("19.99")),
    (Decimal("100"), Decimal("100")),
])
def test_parse_amount_accepts_numbers(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "-1", "NaN", "Infinity"])
def test_parse_amount_rejects(raw):
    with pytest.raises(ValidationError):
        parse_amount(raw)


def test_validate_transaction_builds_entry():
    entry = validate_transaction({
        "amount": "120",
        "category": "Footwear",
        "item_type": "womenswear",
        "item_id": 42,
        "brand": " Zara ",
        "date": "2025-03-04T10:00:00Z",
    })

    assert entry.amount == Decimal("120")
    assert entry.category == "footwear"
    assert entry.item_type == "womenswear"
    assert entry.item_id == "42"
    assert entry.brand == "Zara"
    assert entry.occurred_on == date(2025, 3, 4)


def test_validate_transaction_defaults_date_to_today():
    entry = validate_transaction({"amount": "1", "category": "kidswear"}, today=date(2025, 6, 1))

    assert entry.occurred_on == date(2025, 6, 1)


def test_validate_transaction_accepts_datetime():
    entry = validate_transaction({"amount": "1", "category": "kidswear", "date": datetime(2025, 6, 2, 8)})

    assert entry.occurred_on == date(2025, 6, 2)


@pytest.mark.parametrize("data", [
    {"category": "menswear"},
    {"amount": "-5", "category": "menswear"},
    {"amount": "5"},
    {"amount": "5", "category": "hats"},
    {"amount": "5", "category": "menswear", "item_type": "shoes"},
    {"amount": "5", "category": "menswear", "date": "yesterday"},
    {"amount": "5", "category": "menswear", "date": 20250101},
])
def test_validate_transaction_rejects(data):
    with pytest.raises(ValidationError):
        validate_transaction(data)
