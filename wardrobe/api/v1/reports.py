"""
Spending report API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wardrobe.api.deps import get_db, get_current_user_id
from wardrobe.application.budget_report import BudgetLedgerReportService
from wardrobe.application.spending_report import SpendingReportService, SpendingSummaryService


router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/summary")
def get_spending_summary(
    year: int,
    month: int | None = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Spend per item family for a year or month, compared with the year's budget"""
    return SpendingSummaryService(db).get_summary(user_id, year, month)


@router.get("/spending")
def generate_spending_report(
    year: int,
    month: int | None = None,
    brand: str | None = None,
    event: str | None = None,
    fmt: str = Query("json", alias="format"),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return SpendingReportService(db).generate(
        user_id=user_id,
        year=year,
        month=month,
        brand=brand,
        event=event,
        fmt=fmt,
    )


@router.get("/budgets/{budget_id}")
def generate_budget_report(
    budget_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Ledger report of one budget with its projection as of now"""
    return BudgetLedgerReportService(db).build(user_id, budget_id)
