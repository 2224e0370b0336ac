"""
SQLAlchemy ORM models (budget tables, audit log, item-family stores)
"""
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import (
    String, DateTime, Integer, Text, TIMESTAMP, Date, func, Boolean, Numeric,
    ForeignKey, UniqueConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB

from wardrobe.infrastructure.db.session import Base


class EventLog(Base):
    """
    Audit log: every budget mutation is recorded as an immutable event
    """
    __tablename__ = "event_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    actor_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    event_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    payload_json: Mapped[dict] = mapped_column(JSONB, nullable=False)  # PostgreSQL JSONB

    occurred_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        index=True
    )
    budget_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


# ============================================================================
# Budgets
# ============================================================================


class BudgetModel(Base):
    """
    Budget for one (user, period).

    The spending columns are a snapshot of aggregator output and are written
    in the same unit of work as the ledger rows they derive from. version is
    the optimistic-concurrency revision (UPDATE ... WHERE version = :seen).
    """
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    budget_type: Mapped[str] = mapped_column(String(20), nullable=False)  # monthly, quarterly, annual, event-based, category-based
    period_start: Mapped[date_type] = mapped_column(Date, nullable=False)
    period_end: Mapped[date_type] = mapped_column(Date, nullable=False)
    period_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period_quarter: Mapped[int | None] = mapped_column(Integer, nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")

    # Derived (BudgetAggregator / ProjectionEngine)
    total_spent: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    remaining_budget: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    percentage_used: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4), nullable=False, server_default="0")
    average_spending_per_day: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    projected_spending: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    # Alerts
    alerts_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    warning_percent: Mapped[int] = mapped_column(Integer, nullable=False, server_default="75")
    warning_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    danger_percent: Mapped[int] = mapped_column(Integer, nullable=False, server_default="90")
    danger_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    exceeded_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    alert_level: Mapped[str | None] = mapped_column(String(20), nullable=True)  # dedup state, see domain.alerts
    alert_threshold: Mapped[int] = mapped_column(Integer, nullable=False, server_default="80")  # spending summary

    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="active")
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    recurring_frequency: Mapped[str | None] = mapped_column(String(20), nullable=True)
    recurring_auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    recurring_adjustment_factor: Mapped[Decimal] = mapped_column(Numeric(precision=6, scale=3), nullable=False, server_default="1.0")

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    categories: Mapped[list["BudgetCategoryModel"]] = relationship(
        back_populates="budget", cascade="all, delete-orphan", order_by="BudgetCategoryModel.position",
    )
    allocations: Mapped[list["BudgetAllocationModel"]] = relationship(
        back_populates="budget", cascade="all, delete-orphan", order_by="BudgetAllocationModel.position",
    )
    notifications: Mapped[list["BudgetNotificationModel"]] = relationship(
        back_populates="budget", cascade="all, delete-orphan", order_by="BudgetNotificationModel.id",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint('user_id', 'budget_type', 'period_start', name='uq_budget_user_period'),
        Index('ix_budget_user_status', 'user_id', 'status'),
        Index('ix_budget_user_period', 'user_id', 'period_start', 'period_end'),
    )


class BudgetCategoryModel(Base):
    """Per-category allocation; spent and percentage are derived."""
    __tablename__ = "budget_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    allocated: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    spent: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    percentage: Mapped[Decimal] = mapped_column(Numeric(precision=7, scale=4), nullable=False, server_default="0")

    budget: Mapped["BudgetModel"] = relationship(back_populates="categories")

    __table_args__ = (
        UniqueConstraint('budget_id', 'category', name='uq_budget_category'),
    )


class BudgetAllocationModel(Base):
    """Occasion or brand budget line (kind = OCCASION / BRAND); spent is derived."""
    __tablename__ = "budget_allocations"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    label_key: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    allocated: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    spent: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    target_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    budget: Mapped["BudgetModel"] = relationship(back_populates="allocations")

    __table_args__ = (
        UniqueConstraint('budget_id', 'kind', 'label_key', name='uq_budget_allocation_label'),
    )


class BudgetTransactionModel(Base):
    """Append-only ledger row. Never updated or deleted."""
    __tablename__ = "budget_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    item_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    item_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    item_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    occasion: Mapped[str | None] = mapped_column(String(50), nullable=True)
    occurred_on: Mapped[date_type] = mapped_column(Date, nullable=False)
    store: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint('budget_id', 'sequence', name='uq_budget_transaction_seq'),
        Index('ix_budget_transaction_date', 'budget_id', 'occurred_on'),
    )


class BudgetNotificationModel(Base):
    """Fired budget alert (warning / danger / exceeded)."""
    __tablename__ = "budget_notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(String(255), nullable=False)
    percentage_used: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4), nullable=False)
    sent_at: Mapped[DateTime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")

    budget: Mapped["BudgetModel"] = relationship(back_populates="notifications")


# ============================================================================
# Item-family stores (owned by the wardrobe CRUD side; read-only here)
# ============================================================================


class MenswearItem(Base):
    __tablename__ = "menswear_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    final_price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    purchase_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index('ix_menswear_user_purchase', 'user_id', 'purchase_date'),
    )


class WomenswearItem(Base):
    __tablename__ = "womenswear_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    final_price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    purchase_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index('ix_womenswear_user_purchase', 'user_id', 'purchase_date'),
    )


class KidswearItem(Base):
    __tablename__ = "kidswear_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    age_group: Mapped[str] = mapped_column(String(20), nullable=False)  # baby, toddler, kids, teens
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    final_price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    purchase_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index('ix_kidswear_user_purchase', 'user_id', 'purchase_date'),
    )


class StyleComboModel(Base):
    __tablename__ = "style_combos"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_tag: Mapped[str | None] = mapped_column(String(100), nullable=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    created_at: Mapped[DateTime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    items: Mapped[list["StyleComboItemModel"]] = relationship(
        back_populates="combo", cascade="all, delete-orphan", order_by="StyleComboItemModel.id",
    )


class StyleComboItemModel(Base):
    """Reference from a combo to an item in one of the family stores."""
    __tablename__ = "style_combo_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    combo_id: Mapped[int] = mapped_column(ForeignKey("style_combos.id", ondelete="CASCADE"), nullable=False, index=True)
    item_family: Mapped[str] = mapped_column(String(20), nullable=False)  # menswear, womenswear, kidswear
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)

    combo: Mapped["StyleComboModel"] = relationship(back_populates="items")
