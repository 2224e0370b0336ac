"""
Transaction ledger repository - append-only budget_transactions table
"""
from typing import List
from sqlalchemy import func
from sqlalchemy.orm import Session

from wardrobe.domain.ledger import LedgerEntry
from wardrobe.infrastructure.db.models import BudgetTransactionModel


def to_entry(row: BudgetTransactionModel) -> LedgerEntry:
    return LedgerEntry(
        amount=row.amount,
        category=row.category,
        occurred_on=row.occurred_on,
        item_id=row.item_id,
        item_type=row.item_type,
        item_name=row.item_name,
        brand=row.brand,
        occasion=row.occasion,
        store=row.store,
        notes=row.notes,
        payment_method=row.payment_method,
        sequence=row.sequence,
    )


class LedgerRepository:
    """
    Read/append access to a budget's ledger. Append-only: no update, no delete.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(self, budget_id: int, entry: LedgerEntry) -> BudgetTransactionModel:
        """
        Insert the next ledger row for the budget (flush, no commit)

        The sequence number is next after the current maximum; a concurrent
        writer picking the same number hits uq_budget_transaction_seq.
        """
        sequence = self.next_sequence(budget_id)
        row = BudgetTransactionModel(
            budget_id=budget_id,
            sequence=sequence,
            item_id=entry.item_id,
            item_type=entry.item_type,
            item_name=entry.item_name,
            amount=entry.amount,
            category=entry.category,
            brand=entry.brand,
            occasion=entry.occasion,
            occurred_on=entry.occurred_on,
            store=entry.store,
            notes=entry.notes,
            payment_method=entry.payment_method,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def next_sequence(self, budget_id: int) -> int:
        current = (
            self.db.query(func.max(BudgetTransactionModel.sequence))
            .filter(BudgetTransactionModel.budget_id == budget_id)
            .scalar()
        )
        return (current or 0) + 1

    def entries(self, budget_id: int) -> List[LedgerEntry]:
        """All entries in sequence order."""
        rows = (
            self.db.query(BudgetTransactionModel)
            .filter(BudgetTransactionModel.budget_id == budget_id)
            .order_by(BudgetTransactionModel.sequence.asc())
            .all()
        )
        return [to_entry(r) for r in rows]

    def rows(self, budget_id: int, limit: int | None = None) -> List[BudgetTransactionModel]:
        query = (
            self.db.query(BudgetTransactionModel)
            .filter(BudgetTransactionModel.budget_id == budget_id)
            .order_by(BudgetTransactionModel.sequence.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def recent(self, budget_id: int, limit: int = 10) -> List[BudgetTransactionModel]:
        """Newest first by purchase date, then by sequence."""
        return (
            self.db.query(BudgetTransactionModel)
            .filter(BudgetTransactionModel.budget_id == budget_id)
            .order_by(
                BudgetTransactionModel.occurred_on.desc(),
                BudgetTransactionModel.sequence.desc(),
            )
            .limit(limit)
            .all()
        )
