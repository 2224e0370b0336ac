"""
Ledger entry value object and input validation for transaction appends
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from wardrobe.domain.budget import CATEGORIES, ITEM_TYPES
from wardrobe.domain.errors import ValidationError


@dataclass(frozen=True)
class LedgerEntry:
    """
    One purchase recorded against a budget.

    The ledger is append-only: entries are never updated or deleted.
    """
    amount: Decimal
    category: str
    occurred_on: date
    item_id: str | None = None
    item_type: str | None = None
    item_name: str | None = None
    brand: str | None = None
    occasion: str | None = None
    store: str | None = None
    notes: str | None = None
    payment_method: str | None = None
    sequence: int | None = None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_amount(value: Any) -> Decimal:
    """
    Parse a non-negative money amount (Decimal, int or numeric string)

    Raises:
        ValidationError: missing, non-numeric, non-finite or negative value
    """
    if value is None or value == "":
        raise ValidationError("amount is required")
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    elif isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"amount is not a number: {value!r}")
    if not amount.is_finite():
        raise ValidationError("amount must be a finite number")
    if amount < 0:
        raise ValidationError("amount must be >= 0")
    return amount


def validate_transaction(data: Mapping[str, Any], today: date | None = None) -> LedgerEntry:
    """
    Validate raw transaction input and build a LedgerEntry

    Args:
        data: mapping with amount, category (required) and optional
            item_id, item_type, item_name, brand, occasion, date, store,
            notes, payment_method
        today: default purchase date when data has none

    Raises:
        ValidationError: negative/missing amount, unknown category or item type

    Example:
        >>> validate_transaction({"amount": "49.90", "category": "footwear"}).amount
        Decimal('49.90')
    """
    amount = parse_amount(data.get("amount"))

    category = _clean(data.get("category"))
    if category is None:
        raise ValidationError("category is required")
    category = category.lower()
    if category not in CATEGORIES:
        raise ValidationError(
            f"Unknown category: {category}. Use one of: {', '.join(CATEGORIES)}"
        )

    item_type = _clean(data.get("item_type"))
    if item_type is not None:
        item_type = item_type.lower()
        if item_type not in ITEM_TYPES:
            raise ValidationError(
                f"Unknown item type: {item_type}. Use one of: {', '.join(ITEM_TYPES)}"
            )

    occurred_on = data.get("date") or today or date.today()
    if isinstance(occurred_on, datetime):
        occurred_on = occurred_on.date()
    elif isinstance(occurred_on, str):
        try:
            occurred_on = date.fromisoformat(occurred_on[:10])
        except ValueError:
            raise ValidationError(f"date is not an ISO date: {occurred_on!r}")
    elif not isinstance(occurred_on, date):
        raise ValidationError(f"date is not a date: {occurred_on!r}")

    item_id = data.get("item_id")

    return LedgerEntry(
        amount=amount,
        category=category,
        occurred_on=occurred_on,
        item_id=str(item_id) if item_id is not None else None,
        item_type=item_type,
        item_name=_clean(data.get("item_name")),
        brand=_clean(data.get("brand")),
        occasion=_clean(data.get("occasion")),
        store=_clean(data.get("store")),
        notes=_clean(data.get("notes")),
        payment_method=_clean(data.get("payment_method")),
    )
