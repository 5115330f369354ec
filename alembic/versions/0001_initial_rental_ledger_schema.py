"""initial rental and credit ledger schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('telephone_number', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='user'),
        sa.Column('total_spend', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tier', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('credits', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('credits >= 0', name='ck_users_credits_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'car_providers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('telephone_number', sa.String(), nullable=True),
        sa.Column('credits', sa.Float(), nullable=False, server_default='0'),
        sa.Column('complete_rent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('average_rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating_1', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating_2', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating_3', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating_4', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating_5', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('credits >= 0', name='ck_car_providers_credits_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_car_providers_email', 'car_providers', ['email'], unique=True)

    op.create_table(
        'vehicles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('provider_id', sa.Uuid(), nullable=False),
        sa.Column('license_plate', sa.String(length=20), nullable=False),
        sa.Column('brand', sa.String(), nullable=False),
        sa.Column('model', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False, server_default='other'),
        sa.Column('color', sa.String(), nullable=True),
        sa.Column('daily_rate', sa.Float(), nullable=False),
        sa.Column('tier', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['provider_id'], ['car_providers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vehicles_license_plate', 'vehicles', ['license_plate'], unique=True)
    op.create_index('ix_vehicles_provider_id', 'vehicles', ['provider_id'])

    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('rate', sa.Float(), nullable=False),
        sa.Column('daily', sa.Boolean(), nullable=False),
        sa.Column('available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'rentals',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('vehicle_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('return_date', sa.DateTime(), nullable=False),
        sa.Column('actual_return_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('service_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('final_price', sa.Float(), nullable=False),
        sa.Column('deposit_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('additional_charges', sa.JSON(), nullable=True),
        sa.Column('service_ids', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_rated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('return_date > start_date', name='ck_rentals_return_after_start'),
        sa.CheckConstraint('final_price >= 0', name='ck_rentals_final_price_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_rentals_status', 'rentals', ['status'])
    op.create_index('ix_rentals_user_id', 'rentals', ['user_id'])
    op.create_index('ix_rentals_vehicle_id', 'rentals', ['vehicle_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('provider_id', sa.Uuid(), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('reference', sa.String(length=255), nullable=True),
        sa.Column('rental_id', sa.Uuid(), nullable=True),
        sa.Column('performed_by', sa.Uuid(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('transaction_date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "(user_id IS NOT NULL AND provider_id IS NULL) OR (user_id IS NULL AND provider_id IS NOT NULL)",
            name='ck_transactions_single_account',
        ),
        sa.CheckConstraint(
            "(type IN ('deposit', 'refund') AND amount >= 0)"
            " OR (type IN ('payment', 'withdrawal') AND amount <= 0)"
            " OR type IN ('system', 'payout')",
            name='ck_transactions_amount_sign',
        ),
        sa.ForeignKeyConstraint(['performed_by'], ['users.id']),
        sa.ForeignKeyConstraint(['provider_id'], ['car_providers.id']),
        sa.ForeignKeyConstraint(['rental_id'], ['rentals.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_user_date', 'transactions', ['user_id', 'transaction_date'])
    op.create_index('ix_transactions_provider_date', 'transactions', ['provider_id', 'transaction_date'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])
    op.create_index('ix_transactions_rental', 'transactions', ['rental_id'])


def downgrade() -> None:
    op.drop_table('transactions')
    op.drop_table('rentals')
    op.drop_table('services')
    op.drop_table('vehicles')
    op.drop_table('car_providers')
    op.drop_table('users')
