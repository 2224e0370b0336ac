"""
Transaction use cases - appending purchases to a budget's ledger
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping

from sqlalchemy.orm import Session

from wardrobe.config import get_settings
from wardrobe.application.budget_engine import BudgetEngine, commit_with_retry, local_now
from wardrobe.application.budgets import get_budget
from wardrobe.domain.budget import Budget
from wardrobe.domain.ledger import LedgerEntry, validate_transaction
from wardrobe.infrastructure.db.models import (
    BudgetModel, BudgetNotificationModel, BudgetTransactionModel,
)
from wardrobe.infrastructure.eventlog.repository import EventLogRepository
from wardrobe.infrastructure.ledger import LedgerRepository

logger = logging.getLogger(__name__)


@dataclass
class RecordedTransaction:
    budget: BudgetModel
    sequence: int
    alerts: List[BudgetNotificationModel] = field(default_factory=list)


class RecordTransactionUseCase:
    """
    Use case: append a purchase to the ledger

    The append, the recompute it triggers, any fired alert, any status change
    and the audit event are one unit of work guarded by the budget version.
    On a conflict everything is rolled back and the append retried from a
    fresh read, up to APPEND_MAX_RETRIES attempts.

    Appends are accepted whatever the status: late-recorded purchases of a
    paused, cancelled or completed budget still count.
    """

    def __init__(self, db: Session, max_retries: int | None = None):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)
        self.engine = BudgetEngine(db)
        self.max_retries = get_settings().APPEND_MAX_RETRIES if max_retries is None else max_retries

    def execute(
        self,
        user_id: int,
        budget_id: int,
        transaction: Mapping[str, Any],
        now: datetime | None = None,
        actor_user_id: int | None = None,
    ) -> RecordedTransaction:
        """
        Args:
            user_id: budget owner
            budget_id: budget to append to
            transaction: raw input (amount, category, item_type, date, ...)
            now: evaluation instant for projection/lifecycle (default: now)
            actor_user_id: who recorded it

        Returns:
            RecordedTransaction with the recomputed budget

        Raises:
            ValidationError: malformed transaction
            NotFoundError: unknown budget
            ConflictError: retries exhausted
        """
        now = now or local_now()
        entry = validate_transaction(transaction, today=now.date())

        recorded = commit_with_retry(
            self.db, budget_id, self.max_retries,
            lambda: self._append(user_id, budget_id, entry, now, actor_user_id),
        )
        logger.info(
            "Budget %d: recorded #%d %s %s (total spent %s)",
            budget_id, recorded.sequence, entry.amount, entry.category, recorded.budget.total_spent,
        )
        return recorded

    def _append(
        self,
        user_id: int,
        budget_id: int,
        entry: LedgerEntry,
        now: datetime,
        actor_user_id: int | None,
    ) -> RecordedTransaction:
        budget = get_budget(self.db, user_id, budget_id=budget_id)

        row = self.ledger.append(budget.id, entry)
        self.event_repo.append_event(
            user_id=budget.user_id,
            event_type="budget_transaction_recorded",
            payload=Budget.record_transaction(
                budget.id, row.sequence, entry.amount, entry.category, entry.item_type, entry.item_id,
            ),
            actor_user_id=actor_user_id,
        )

        result = self.engine.sync(budget, now, actor_user_id)
        return RecordedTransaction(budget=budget, sequence=row.sequence, alerts=result.notifications)


def list_transactions(
    db: Session,
    user_id: int,
    budget_id: int,
    limit: int | None = None,
) -> List[BudgetTransactionModel]:
    """Ledger rows of the user's budget in sequence order."""
    budget = get_budget(db, user_id, budget_id=budget_id)
    return LedgerRepository(db).rows(budget.id, limit)
