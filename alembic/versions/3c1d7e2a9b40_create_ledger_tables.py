"""create ledger tables

Revision ID: 3c1d7e2a9b40
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '3c1d7e2a9b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'ledger_entry',
        sa.Column('id', sa.String(length=120), nullable=False),
        sa.Column('fingerprint', sa.Text(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=False), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('merchant', sa.Text(), nullable=True),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('spending_kind', sa.String(length=20), nullable=False),
        sa.Column('counted_in_expense', sa.Boolean(), nullable=False),
        sa.Column('account_mask', sa.String(length=100), nullable=True),
        sa.Column('counterparty_name', sa.String(length=200), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_ledger_entry_fingerprint'), 'ledger_entry', ['fingerprint'], unique=True)
    op.create_index(op.f('ix_ledger_entry_occurred_at'), 'ledger_entry', ['occurred_at'], unique=False)

    op.create_table(
        'ledger_classification_rule',
        sa.Column('id', sa.String(length=120), nullable=False),
        sa.Column('keyword', sa.String(length=200), nullable=False),
        sa.Column(
            'spending_kind',
            sa.Enum('NORMAL', 'SUBSCRIPTION', 'INSTALLMENT', 'LOAN', name='spendingkind', native_enum=False),
            nullable=False,
        ),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column(
            'forced_type',
            sa.Enum('INCOME', 'EXPENSE', 'TRANSFER', name='entrytype', native_enum=False),
            nullable=True,
        ),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_ledger_classification_rule_keyword'), 'ledger_classification_rule', ['keyword'], unique=True
    )

    op.create_table(
        'ledger_owned_account',
        sa.Column('account_mask', sa.String(length=100), nullable=False),
        sa.Column('bank', sa.String(length=100), nullable=False),
        sa.Column('owner_name', sa.String(length=200), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('account_mask'),
    )
    op.create_table(
        'ledger_owner_alias',
        sa.Column('alias', sa.String(length=200), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('alias'),
    )
    op.create_table(
        'ledger_quick_template',
        sa.Column('id', sa.String(length=120), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column(
            'type',
            sa.Enum('INCOME', 'EXPENSE', 'TRANSFER', name='entrytype', native_enum=False),
            nullable=False,
        ),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('merchant', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column(
            'spending_kind',
            sa.Enum('NORMAL', 'SUBSCRIPTION', 'INSTALLMENT', 'LOAN', name='spendingkind', native_enum=False),
            nullable=False,
        ),
        sa.Column('repeat_monthly_day', sa.Integer(), nullable=True),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'ledger_installment_plan',
        sa.Column('id', sa.String(length=120), nullable=False),
        sa.Column('card_last4', sa.String(length=4), nullable=False),
        sa.Column('merchant', sa.Text(), nullable=False),
        sa.Column('monthly_amount', sa.BigInteger(), nullable=False),
        sa.Column('total_months', sa.Integer(), nullable=False),
        sa.Column('start_year', sa.Integer(), nullable=False),
        sa.Column('start_month', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('ledger_installment_plan')
    op.drop_table('ledger_quick_template')
    op.drop_table('ledger_owner_alias')
    op.drop_table('ledger_owned_account')
    op.drop_index(op.f('ix_ledger_classification_rule_keyword'), table_name='ledger_classification_rule')
    op.drop_table('ledger_classification_rule')
    op.drop_index(op.f('ix_ledger_entry_occurred_at'), table_name='ledger_entry')
    op.drop_index(op.f('ix_ledger_entry_fingerprint'), table_name='ledger_entry')
    op.drop_table('ledger_entry')
