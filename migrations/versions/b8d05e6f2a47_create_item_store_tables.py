"""create item store tables

Item-family stores and style combos are written by the wardrobe CRUD side;
budgets only read them.

Revision ID: b8d05e6f2a47
Revises: 7c4e2d9a1f35
Create Date: 2026-09-29

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b8d05e6f2a47'
down_revision: Union[str, None] = '7c4e2d9a1f35'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_FAMILIES = ('menswear', 'womenswear', 'kidswear')


def upgrade() -> None:
    for family in _FAMILIES:
        columns = [
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), nullable=False, index=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('category', sa.String(50), nullable=False),
        ]
        if family == 'kidswear':
            columns.append(sa.Column('age_group', sa.String(20), nullable=False))
        columns += [
            sa.Column('brand', sa.String(100), nullable=True),
            sa.Column('final_price', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
            sa.Column('purchase_date', sa.Date(), nullable=False),
        ]
        op.create_table(f'{family}_items', *columns)
        op.create_index(f'ix_{family}_user_purchase', f'{family}_items', ['user_id', 'purchase_date'])

    op.create_table(
        'style_combos',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('event_tag', sa.String(100), nullable=True),
        sa.Column('total_price', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        'style_combo_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('combo_id', sa.Integer(), sa.ForeignKey('style_combos.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('item_family', sa.String(20), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('style_combo_items')
    op.drop_table('style_combos')
    for family in reversed(_FAMILIES):
        op.drop_index(f'ix_{family}_user_purchase', table_name=f'{family}_items')
        op.drop_table(f'{family}_items')
