"""initial shopvest schema

Revision ID: 2026_10_19_0000
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates users, versioned system settings, the wallet ledger with its cached
balances, shops with slot reservations, investments with their accrual
records, and the withdrawal / transfer / deposit request tables.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '2026_10_19_0000'
down_revision = None
branch_labels = None
depends_on = None


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _base_indexes(table: str) -> None:
    op.create_index(op.f(f'ix_{table}_id'), table, ['id'], unique=False)
    op.create_index(op.f(f'ix_{table}_created_at'), table, ['created_at'], unique=False)


def upgrade() -> None:
    # users
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('kyc_status', sa.String(length=20), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('users')
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_kyc_status'), 'users', ['kyc_status'], unique=False)

    # system_settings (one row per version, never updated)
    op.create_table(
        'system_settings',
        *_base_columns(),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('maintenance_mode', sa.Boolean(), nullable=False),
        sa.Column('maintenance_message', sa.Text(), nullable=True),
        sa.Column('min_withdrawal', sa.BigInteger(), nullable=False),
        sa.Column('max_withdrawal', sa.BigInteger(), nullable=False),
        sa.Column('withdrawal_fee_rate', sa.Numeric(precision=6, scale=4), nullable=False),
        sa.Column('transfer_fee_rate', sa.Numeric(precision=6, scale=4), nullable=False),
        sa.Column('default_profit_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('min_deposit', sa.BigInteger(), nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.Column('change_note', sa.String(length=255), nullable=True),
        sa.UniqueConstraint('version', name='uq_system_settings_version'),
        sa.CheckConstraint('min_withdrawal >= 0', name='check_system_settings_min_withdrawal'),
        sa.CheckConstraint('max_withdrawal >= min_withdrawal', name='check_system_settings_withdrawal_bounds'),
        sa.CheckConstraint(
            'withdrawal_fee_rate >= 0 AND withdrawal_fee_rate < 1', name='check_system_settings_withdrawal_fee_rate'
        ),
        sa.CheckConstraint(
            'transfer_fee_rate >= 0 AND transfer_fee_rate < 1', name='check_system_settings_transfer_fee_rate'
        ),
        sa.CheckConstraint(
            'default_profit_percentage >= 0 AND default_profit_percentage <= 100',
            name='check_system_settings_profit_percentage',
        ),
        sa.CheckConstraint('min_deposit >= 0', name='check_system_settings_min_deposit'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('system_settings')
    op.create_index(op.f('ix_system_settings_version'), 'system_settings', ['version'], unique=False)

    # ledger_entries (write-once, no updated_at)
    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('wallet_kind', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('correlation_id', sa.Uuid(), nullable=True),
        sa.Column('reverses_entry_id', sa.Uuid(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_ledger_entries_owner_id'),
        sa.ForeignKeyConstraint(['reverses_entry_id'], ['ledger_entries.id'], name='fk_ledger_entries_reverses'),
        sa.CheckConstraint('amount <> 0', name='check_ledger_entries_amount_non_zero'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('ledger_entries')
    op.create_index(op.f('ix_ledger_entries_owner_id'), 'ledger_entries', ['owner_id'], unique=False)
    op.create_index(op.f('ix_ledger_entries_wallet_kind'), 'ledger_entries', ['wallet_kind'], unique=False)
    op.create_index(op.f('ix_ledger_entries_category'), 'ledger_entries', ['category'], unique=False)
    op.create_index(op.f('ix_ledger_entries_status'), 'ledger_entries', ['status'], unique=False)
    op.create_index(op.f('ix_ledger_entries_correlation_id'), 'ledger_entries', ['correlation_id'], unique=False)
    op.create_index('ix_ledger_entries_owner_created', 'ledger_entries', ['owner_id', 'created_at', 'id'], unique=False)
    op.create_index('ix_ledger_entries_wallet', 'ledger_entries', ['owner_id', 'wallet_kind', 'status'], unique=False)

    # wallet_balances (cached SUM of completed ledger entries)
    op.create_table(
        'wallet_balances',
        *_base_columns(),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('balance', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_wallet_balances_owner_id'),
        sa.UniqueConstraint('owner_id', 'kind', name='uq_wallet_balances_owner_kind'),
        sa.CheckConstraint('balance >= 0', name='check_wallet_balances_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('wallet_balances')
    op.create_index(op.f('ix_wallet_balances_owner_id'), 'wallet_balances', ['owner_id'], unique=False)

    # shops
    op.create_table(
        'shops',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('daily_percent', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('min_amount', sa.BigInteger(), nullable=False),
        sa.Column('max_amount', sa.BigInteger(), nullable=False),
        sa.Column('total_slots', sa.Integer(), nullable=False),
        sa.Column('filled_slots', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.CheckConstraint('daily_percent >= 0 AND daily_percent <= 100', name='check_shops_daily_percent'),
        sa.CheckConstraint('duration_days > 0', name='check_shops_duration_positive'),
        sa.CheckConstraint('min_amount > 0', name='check_shops_min_amount_positive'),
        sa.CheckConstraint('min_amount <= max_amount', name='check_shops_amount_bounds'),
        sa.CheckConstraint('total_slots > 0', name='check_shops_total_slots_positive'),
        sa.CheckConstraint('filled_slots >= 0 AND filled_slots <= total_slots', name='check_shops_filled_slots'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('shops')
    op.create_index(op.f('ix_shops_status'), 'shops', ['status'], unique=False)

    # slot_reservations
    op.create_table(
        'slot_reservations',
        *_base_columns(),
        sa.Column('shop_id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('slots', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('investment_id', sa.Uuid(), nullable=True),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_slot_reservations_shop_id'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_slot_reservations_owner_id'),
        sa.UniqueConstraint('investment_id', name='uq_slot_reservations_investment_id'),
        sa.CheckConstraint('slots > 0', name='check_slot_reservations_slots_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('slot_reservations')
    op.create_index(op.f('ix_slot_reservations_shop_id'), 'slot_reservations', ['shop_id'], unique=False)
    op.create_index(op.f('ix_slot_reservations_owner_id'), 'slot_reservations', ['owner_id'], unique=False)
    op.create_index(op.f('ix_slot_reservations_status'), 'slot_reservations', ['status'], unique=False)
    op.create_index('ix_slot_reservations_shop_status', 'slot_reservations', ['shop_id', 'status'], unique=False)

    # investments
    op.create_table(
        'investments',
        *_base_columns(),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('shop_id', sa.Uuid(), nullable=False),
        sa.Column('reservation_id', sa.Uuid(), nullable=True),
        sa.Column('shop_name', sa.String(length=255), nullable=False),
        sa.Column('daily_percent', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('capital', sa.BigInteger(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('accrued_profit', sa.BigInteger(), nullable=False),
        sa.Column('days_accrued', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('matured_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('capital_withdrawn_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_investments_owner_id'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], name='fk_investments_shop_id'),
        sa.ForeignKeyConstraint(['reservation_id'], ['slot_reservations.id'], name='fk_investments_reservation_id'),
        sa.UniqueConstraint('reservation_id', name='uq_investments_reservation_id'),
        sa.CheckConstraint('capital > 0', name='check_investments_capital_positive'),
        sa.CheckConstraint('accrued_profit >= 0', name='check_investments_accrued_profit'),
        sa.CheckConstraint('days_accrued >= 0 AND days_accrued <= duration_days', name='check_investments_days_accrued'),
        sa.CheckConstraint('end_date >= start_date', name='check_investments_dates'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('investments')
    op.create_index(op.f('ix_investments_owner_id'), 'investments', ['owner_id'], unique=False)
    op.create_index(op.f('ix_investments_shop_id'), 'investments', ['shop_id'], unique=False)
    op.create_index(op.f('ix_investments_end_date'), 'investments', ['end_date'], unique=False)
    op.create_index(op.f('ix_investments_status'), 'investments', ['status'], unique=False)
    op.create_index('ix_investments_owner_status', 'investments', ['owner_id', 'status'], unique=False)

    # profit_accruals (one row per investment and day)
    op.create_table(
        'profit_accruals',
        *_base_columns(),
        sa.Column('investment_id', sa.Uuid(), nullable=False),
        sa.Column('accrual_date', sa.Date(), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('ledger_entry_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['investment_id'], ['investments.id'], name='fk_profit_accruals_investment_id'),
        sa.ForeignKeyConstraint(['ledger_entry_id'], ['ledger_entries.id'], name='fk_profit_accruals_ledger_entry_id'),
        sa.UniqueConstraint('investment_id', 'accrual_date', name='uq_profit_accruals_investment_date'),
        sa.CheckConstraint('amount > 0', name='check_profit_accruals_amount_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('profit_accruals')
    op.create_index(op.f('ix_profit_accruals_investment_id'), 'profit_accruals', ['investment_id'], unique=False)

    # withdrawal_requests
    op.create_table(
        'withdrawal_requests',
        *_base_columns(),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('investment_id', sa.Uuid(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('fee_rate', sa.Numeric(precision=6, scale=4), nullable=False),
        sa.Column('fee', sa.BigInteger(), nullable=False),
        sa.Column('net_amount', sa.BigInteger(), nullable=False),
        sa.Column('method', sa.String(length=20), nullable=False),
        sa.Column('destination', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('settings_version', sa.Integer(), nullable=False),
        sa.Column('payout_reference', sa.String(length=255), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.Uuid(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_withdrawal_requests_owner_id'),
        sa.ForeignKeyConstraint(['investment_id'], ['investments.id'], name='fk_withdrawal_requests_investment_id'),
        sa.CheckConstraint('amount > 0', name='check_withdrawal_requests_amount_positive'),
        sa.CheckConstraint('fee >= 0 AND net_amount = amount - fee', name='check_withdrawal_requests_fee'),
        sa.CheckConstraint(
            "(kind = 'CAPITAL' AND investment_id IS NOT NULL) OR (kind = 'PROFIT' AND investment_id IS NULL)",
            name='check_withdrawal_requests_investment_kind',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('withdrawal_requests')
    op.create_index(op.f('ix_withdrawal_requests_owner_id'), 'withdrawal_requests', ['owner_id'], unique=False)
    op.create_index(op.f('ix_withdrawal_requests_kind'), 'withdrawal_requests', ['kind'], unique=False)
    op.create_index(op.f('ix_withdrawal_requests_investment_id'), 'withdrawal_requests', ['investment_id'], unique=False)
    op.create_index(op.f('ix_withdrawal_requests_status'), 'withdrawal_requests', ['status'], unique=False)
    op.create_index('ix_withdrawal_requests_owner_status', 'withdrawal_requests', ['owner_id', 'status'], unique=False)

    # transfer_requests
    op.create_table(
        'transfer_requests',
        *_base_columns(),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('from_wallet', sa.String(length=20), nullable=False),
        sa.Column('to_wallet', sa.String(length=20), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('fee_rate', sa.Numeric(precision=6, scale=4), nullable=False),
        sa.Column('fee', sa.BigInteger(), nullable=False),
        sa.Column('net_amount', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('settings_version', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.Uuid(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_transfer_requests_owner_id'),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], name='fk_transfer_requests_recipient_id'),
        sa.CheckConstraint('amount > 0', name='check_transfer_requests_amount_positive'),
        sa.CheckConstraint('fee >= 0 AND net_amount = amount - fee', name='check_transfer_requests_fee'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('transfer_requests')
    op.create_index(op.f('ix_transfer_requests_owner_id'), 'transfer_requests', ['owner_id'], unique=False)
    op.create_index(op.f('ix_transfer_requests_recipient_id'), 'transfer_requests', ['recipient_id'], unique=False)
    op.create_index(op.f('ix_transfer_requests_status'), 'transfer_requests', ['status'], unique=False)
    op.create_index('ix_transfer_requests_owner_status', 'transfer_requests', ['owner_id', 'status'], unique=False)

    # deposit_intents
    op.create_table(
        'deposit_intents',
        *_base_columns(),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('provider_reference', sa.String(length=255), nullable=True),
        sa.Column('settings_version', sa.Integer(), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_deposit_intents_owner_id'),
        sa.CheckConstraint('amount > 0', name='check_deposit_intents_amount_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('deposit_intents')
    op.create_index(op.f('ix_deposit_intents_owner_id'), 'deposit_intents', ['owner_id'], unique=False)
    op.create_index(op.f('ix_deposit_intents_status'), 'deposit_intents', ['status'], unique=False)


def downgrade() -> None:
    # Reverse dependency order; dropping a table drops its indexes
    op.drop_table('deposit_intents')
    op.drop_table('transfer_requests')
    op.drop_table('withdrawal_requests')
    op.drop_table('profit_accruals')
    op.drop_table('investments')
    op.drop_table('slot_reservations')
    op.drop_table('shops')
    op.drop_table('wallet_balances')
    op.drop_table('ledger_entries')
    op.drop_table('system_settings')
    op.drop_table('users')
