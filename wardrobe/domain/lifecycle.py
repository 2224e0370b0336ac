"""
Budget lifecycle state machine

Automatic transitions (derived, idempotent):
    active -> completed   period has ended (regardless of spend)
    active -> exceeded    spend above total while still within the period
completed and exceeded are terminal for automatic transitions; paused and
cancelled are operator states that are never entered or left automatically.

Operator transitions:
    active -> paused, paused -> active, active|paused -> cancelled
"""
from datetime import date, datetime
from decimal import Decimal

from wardrobe.domain.budget import (
    BudgetPeriod,
    STATUS_ACTIVE, STATUS_COMPLETED, STATUS_EXCEEDED, STATUS_PAUSED, STATUS_CANCELLED, STATUSES,
)
from wardrobe.domain.errors import ValidationError

_MANUAL_TRANSITIONS = {
    (STATUS_ACTIVE, STATUS_PAUSED),
    (STATUS_PAUSED, STATUS_ACTIVE),
    (STATUS_ACTIVE, STATUS_CANCELLED),
    (STATUS_PAUSED, STATUS_CANCELLED),
}


def transition(
    status: str,
    now: date | datetime,
    period: BudgetPeriod,
    total_spent: Decimal,
    total_amount: Decimal,
) -> str:
    """
    Derive the status for the given instant and spend

    Pure: same inputs always give the same status, and applying it twice
    changes nothing.
    """
    if status != STATUS_ACTIVE:
        return status
    if period.has_ended(now):
        return STATUS_COMPLETED
    if total_spent > total_amount:
        return STATUS_EXCEEDED
    return STATUS_ACTIVE


def transition_reason(new_status: str) -> str:
    if new_status == STATUS_COMPLETED:
        return "period_ended"
    if new_status == STATUS_EXCEEDED:
        return "over_budget"
    return "operator"


def check_manual_transition(current: str, target: str) -> None:
    """
    Raises:
        ValidationError: unknown status or a transition operators may not make
    """
    if target not in STATUSES:
        raise ValidationError(f"Unknown status: {target}")
    if (current, target) not in _MANUAL_TRANSITIONS:
        raise ValidationError(f"Cannot change budget status from {current} to {target}")


def is_active(status: str, period: BudgetPeriod, now: date | datetime) -> bool:
    return status == STATUS_ACTIVE and period.contains(now)
