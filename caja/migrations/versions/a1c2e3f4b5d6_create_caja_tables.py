"""create_caja_tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1c2e3f4b5d6'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ONLY = sa.text("status = 'ACTIVE'")


def upgrade() -> None:
    """Create staff, cash drawers, shifts, transactions and audit tables."""
    op.create_table(
        'staff',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('position', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_staff_tenant', 'staff', ['tenant_id'])

    op.create_table(
        'cash_drawers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('location_id', sa.Uuid(), nullable=True),
        sa.Column('status', sa.Enum('OPEN', 'CLOSED', name='drawerstatus'), nullable=False),
        sa.Column('opened_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('opened_by_id', sa.Uuid(), nullable=True),
        sa.Column('initial_amount', sa.Numeric(precision=20, scale=4), nullable=False, server_default='0'),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_by_id', sa.Uuid(), nullable=True),
        sa.Column('final_amount', sa.Numeric(precision=20, scale=4), nullable=True),
        sa.Column('expected_amount', sa.Numeric(precision=20, scale=4), nullable=True),
        sa.Column('difference', sa.Numeric(precision=20, scale=4), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('initial_amount >= 0', name='ck_cash_drawer_initial_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cash_drawers_tenant', 'cash_drawers', ['tenant_id'])
    op.create_index('ix_cash_drawers_status', 'cash_drawers', ['status'])
    op.create_index('ix_cash_drawers_opened_at', 'cash_drawers', ['opened_at'])

    op.create_table(
        'cash_shifts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('drawer_id', sa.Uuid(), nullable=False),
        sa.Column('cashier_id', sa.Uuid(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('ACTIVE', 'ENDED', 'HANDED_OFF', name='shiftstatus'),
            nullable=False,
        ),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('starting_balance', sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column('ending_balance', sa.Numeric(precision=20, scale=4), nullable=True),
        sa.Column('expected_balance', sa.Numeric(precision=20, scale=4), nullable=True),
        sa.Column('difference', sa.Numeric(precision=20, scale=4), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('handed_off_to_id', sa.Uuid(), nullable=True),
        sa.CheckConstraint('starting_balance >= 0', name='ck_cash_shift_starting_non_negative'),
        sa.CheckConstraint(
            'ending_balance IS NULL OR ending_balance >= 0',
            name='ck_cash_shift_ending_non_negative',
        ),
        sa.ForeignKeyConstraint(['drawer_id'], ['cash_drawers.id']),
        sa.ForeignKeyConstraint(['cashier_id'], ['staff.id']),
        sa.ForeignKeyConstraint(['handed_off_to_id'], ['cash_shifts.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cash_shifts_tenant', 'cash_shifts', ['tenant_id'])
    op.create_index('ix_cash_shifts_status', 'cash_shifts', ['status'])
    op.create_index('ix_cash_shifts_started_at', 'cash_shifts', ['started_at'])
    # At most one ACTIVE shift per drawer and per cashier
    op.create_index(
        'uq_cash_shifts_active_drawer',
        'cash_shifts',
        ['drawer_id'],
        unique=True,
        postgresql_where=ACTIVE_ONLY,
        sqlite_where=ACTIVE_ONLY,
    )
    op.create_index(
        'uq_cash_shifts_active_cashier',
        'cash_shifts',
        ['cashier_id'],
        unique=True,
        postgresql_where=ACTIVE_ONLY,
        sqlite_where=ACTIVE_ONLY,
    )

    op.create_table(
        'cash_transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('drawer_id', sa.Uuid(), nullable=False),
        sa.Column('shift_id', sa.Uuid(), nullable=True),
        sa.Column(
            'type',
            sa.Enum(
                'SALE_CASH', 'DEPOSIT', 'ADJUSTMENT_IN',
                'REFUND_CASH', 'WITHDRAWAL', 'ADJUSTMENT_OUT',
                name='cashtransactiontype',
            ),
            nullable=False,
        ),
        sa.Column('amount', sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('related_id', sa.String(length=255), nullable=True),
        sa.Column('related_type', sa.String(length=100), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_cash_transaction_amount_positive'),
        sa.ForeignKeyConstraint(['drawer_id'], ['cash_drawers.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['cash_shifts.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cash_transactions_drawer', 'cash_transactions', ['drawer_id'])
    op.create_index('ix_cash_transactions_shift', 'cash_transactions', ['shift_id'])
    op.create_index('ix_cash_transactions_type', 'cash_transactions', ['type'])
    op.create_index('ix_cash_transactions_created_at', 'cash_transactions', ['created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=True),
        sa.Column('table_name', sa.String(length=100), nullable=False),
        sa.Column('record_id', sa.String(length=255), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('changed_by', sa.Uuid(), nullable=True),
        sa.Column(
            'new_values',
            sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'),
            nullable=True,
        ),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_table_record', 'audit_logs', ['table_name', 'record_id'])
    op.create_index('ix_audit_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_action', 'audit_logs', ['action'])


def downgrade() -> None:
    """Drop the cash drawer tables and their enum types."""
    op.drop_index('ix_audit_action', table_name='audit_logs')
    op.drop_index('ix_audit_created_at', table_name='audit_logs')
    op.drop_index('ix_audit_table_record', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_cash_transactions_created_at', table_name='cash_transactions')
    op.drop_index('ix_cash_transactions_type', table_name='cash_transactions')
    op.drop_index('ix_cash_transactions_shift', table_name='cash_transactions')
    op.drop_index('ix_cash_transactions_drawer', table_name='cash_transactions')
    op.drop_table('cash_transactions')

    op.drop_index('uq_cash_shifts_active_cashier', table_name='cash_shifts')
    op.drop_index('uq_cash_shifts_active_drawer', table_name='cash_shifts')
    op.drop_index('ix_cash_shifts_started_at', table_name='cash_shifts')
    op.drop_index('ix_cash_shifts_status', table_name='cash_shifts')
    op.drop_index('ix_cash_shifts_tenant', table_name='cash_shifts')
    op.drop_table('cash_shifts')

    op.drop_index('ix_cash_drawers_opened_at', table_name='cash_drawers')
    op.drop_index('ix_cash_drawers_status', table_name='cash_drawers')
    op.drop_index('ix_cash_drawers_tenant', table_name='cash_drawers')
    op.drop_table('cash_drawers')

    op.drop_index('ix_staff_tenant', table_name='staff')
    op.drop_table('staff')

    op.execute("DROP TYPE IF EXISTS cashtransactiontype")
    op.execute("DROP TYPE IF EXISTS shiftstatus")
    op.execute("DROP TYPE IF EXISTS drawerstatus")
