"""Customers, customer ledgers and offers

Revision ID: 002
Revises: 001
Create Date: 2026-10-17 15:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, server_default=None if nullable else '0')


def _tenant_column():
    return sa.Column('tenant_id', sa.String(length=64), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # Create customers table
    op.create_table('customers',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('pincode', sa.String(length=20), nullable=True),
        sa.Column('gstin', sa.String(length=20), nullable=True),
        sa.Column('segment', sa.String(length=16), nullable=False, server_default='REGULAR'),
        sa.Column('loyalty_points', sa.Integer(), nullable=False, server_default='0'),
        _money('wallet_balance'),
        _money('total_spent'),
        sa.Column('visit_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_visit_date', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'phone', name='uq_customers_tenant_phone')
    )
    op.create_index('ix_customers_tenant_id', 'customers', ['tenant_id'])
    op.create_index('ix_customers_segment', 'customers', ['segment'])

    # Create customer ledger tables
    op.create_table('wallet_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('customer_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        _money('amount'),
        _money('balance_after'),
        sa.Column('invoice_id', sa.String(length=36), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_wallet_transactions_tenant_id', 'wallet_transactions', ['tenant_id'])
    op.create_index('ix_wallet_transactions_customer_id', 'wallet_transactions', ['customer_id'])

    op.create_table('loyalty_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('customer_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        _money('amount', nullable=True),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_loyalty_transactions_tenant_id', 'loyalty_transactions', ['tenant_id'])
    op.create_index('ix_loyalty_transactions_customer_id', 'loyalty_transactions', ['customer_id'])

    # Create offers table
    op.create_table('offers',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        _money('discount_value'),
        _money('minimum_purchase_amount', nullable=True),
        _money('maximum_discount_amount', nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=False),
        sa.Column('valid_to', sa.DateTime(), nullable=False),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('applicable_products', sa.JSON(), nullable=False),
        sa.Column('applicable_categories', sa.JSON(), nullable=False),
        sa.Column('stackable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('terms_and_conditions', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_offers_tenant_id', 'offers', ['tenant_id'])
    op.create_index('ix_offers_status', 'offers', ['status'])


def downgrade() -> None:
    for table in ('offers', 'loyalty_transactions', 'wallet_transactions', 'customers'):
        op.drop_table(table)
