"""create budget tables

Revision ID: 7c4e2d9a1f35
Revises: 3f1a9c2e7b10
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c4e2d9a1f35'
down_revision: Union[str, None] = '3f1a9c2e7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('budget_type', sa.String(20), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('period_year', sa.Integer(), nullable=True),
        sa.Column('period_month', sa.Integer(), nullable=True),
        sa.Column('period_quarter', sa.Integer(), nullable=True),
        sa.Column('total_amount', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('total_spent', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('remaining_budget', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('percentage_used', sa.Numeric(precision=14, scale=4), nullable=False, server_default='0'),
        sa.Column('average_spending_per_day', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('projected_spending', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('transaction_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('alerts_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('warning_percent', sa.Integer(), nullable=False, server_default='75'),
        sa.Column('warning_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('danger_percent', sa.Integer(), nullable=False, server_default='90'),
        sa.Column('danger_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('exceeded_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('alert_level', sa.String(20), nullable=True),
        sa.Column('alert_threshold', sa.Integer(), nullable=False, server_default='80'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('recurring_frequency', sa.String(20), nullable=True),
        sa.Column('recurring_auto_renew', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('recurring_adjustment_factor', sa.Numeric(precision=6, scale=3), nullable=False, server_default='1.0'),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'budget_type', 'period_start', name='uq_budget_user_period'),
    )
    op.create_index('ix_budget_user_status', 'budgets', ['user_id', 'status'])
    op.create_index('ix_budget_user_period', 'budgets', ['user_id', 'period_start', 'period_end'])

    op.create_table(
        'budget_categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('budget_id', sa.Integer(), sa.ForeignKey('budgets.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('allocated', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('spent', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Numeric(precision=7, scale=4), nullable=False, server_default='0'),
        sa.UniqueConstraint('budget_id', 'category', name='uq_budget_category'),
    )

    op.create_table(
        'budget_allocations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('budget_id', sa.Integer(), sa.ForeignKey('budgets.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('label', sa.String(100), nullable=False),
        sa.Column('label_key', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('allocated', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('spent', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('priority', sa.String(20), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=True),
        sa.UniqueConstraint('budget_id', 'kind', 'label_key', name='uq_budget_allocation_label'),
    )

    op.create_table(
        'budget_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('budget_id', sa.Integer(), sa.ForeignKey('budgets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(64), nullable=True),
        sa.Column('item_type', sa.String(20), nullable=True),
        sa.Column('item_name', sa.String(255), nullable=True),
        sa.Column('amount', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('brand', sa.String(100), nullable=True),
        sa.Column('occasion', sa.String(50), nullable=True),
        sa.Column('occurred_on', sa.Date(), nullable=False),
        sa.Column('store', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('budget_id', 'sequence', name='uq_budget_transaction_seq'),
    )
    op.create_index('ix_budget_transaction_date', 'budget_transactions', ['budget_id', 'occurred_on'])

    op.create_table(
        'budget_notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('budget_id', sa.Integer(), sa.ForeignKey('budgets.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('alert_type', sa.String(20), nullable=False),
        sa.Column('message', sa.String(255), nullable=False),
        sa.Column('percentage_used', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('acknowledged', sa.Boolean(), nullable=False, server_default='false'),
    )


def downgrade() -> None:
    op.drop_table('budget_notifications')
    op.drop_index('ix_budget_transaction_date', table_name='budget_transactions')
    op.drop_table('budget_transactions')
    op.drop_table('budget_allocations')
    op.drop_table('budget_categories')
    op.drop_index('ix_budget_user_period', table_name='budgets')
    op.drop_index('ix_budget_user_status', table_name='budgets')
    op.drop_table('budgets')
