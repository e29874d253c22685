"""Initial billing schema (cities, customers, expenses, incomes)

Revision ID: 001_initial_billing_schema
Revises:
Create Date: 2024-06-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial_billing_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _ledger_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f(f'ix_{name}_month'), name, ['month'], unique=False)
    op.create_index(op.f(f'ix_{name}_year'), name, ['year'], unique=False)


def upgrade() -> None:
    # Service areas
    op.create_table(
        'cities',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    # Subscribers and their sparse monthly payment record
    op.create_table(
        'customers',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('city_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('user_name', sa.String(length=100), nullable=True),
        sa.Column('ip_number', sa.String(length=64), nullable=True),
        sa.Column('additional_routers', sa.JSON(), nullable=False),
        sa.Column('lap', sa.String(length=100), nullable=True),
        sa.Column('site', sa.String(length=255), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('subscription_value', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('subscription_paid', sa.Numeric(precision=12, scale=2), nullable=True, comment='Legacy single partial amount'),
        sa.Column('monthly_payments', sa.JSON(), nullable=False),
        sa.Column('partial_payments', sa.JSON(), nullable=False),
        sa.Column('has_discount', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('discount_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('setup_fee_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('setup_fee_paid', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('suspended_date', sa.Date(), nullable=True),
        sa.Column('is_exempt', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_customers_city_id'), 'customers', ['city_id'], unique=False)
    op.create_index(op.f('ix_customers_name'), 'customers', ['name'], unique=False)
    op.create_index(op.f('ix_customers_user_name'), 'customers', ['user_name'], unique=False)
    op.create_index(op.f('ix_customers_ip_number'), 'customers', ['ip_number'], unique=False)
    op.create_index(op.f('ix_customers_is_suspended'), 'customers', ['is_suspended'], unique=False)

    # Manual finance ledger
    _ledger_table('expenses')
    _ledger_table('incomes')


def downgrade() -> None:
    for name in ('incomes', 'expenses'):
        op.drop_index(op.f(f'ix_{name}_year'), table_name=name)
        op.drop_index(op.f(f'ix_{name}_month'), table_name=name)
        op.drop_table(name)

    op.drop_index(op.f('ix_customers_is_suspended'), table_name='customers')
    op.drop_index(op.f('ix_customers_ip_number'), table_name='customers')
    op.drop_index(op.f('ix_customers_user_name'), table_name='customers')
    op.drop_index(op.f('ix_customers_name'), table_name='customers')
    op.drop_index(op.f('ix_customers_city_id'), table_name='customers')
    op.drop_table('customers')
    op.drop_table('cities')
