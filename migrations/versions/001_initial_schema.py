"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, server_default=None if nullable else '0')


def _rate(name):
    return sa.Column(name, sa.Numeric(5, 2), nullable=True)


def _tenant_column():
    return sa.Column('tenant_id', sa.String(length=64), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # Create tenants table (platform level, no tenant column)
    op.create_table('tenants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('slug', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('plan', sa.String(length=16), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('tax_number', sa.String(length=32), nullable=True),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.Column('subscription_start', sa.DateTime(), nullable=True),
        sa.Column('subscription_end', sa.DateTime(), nullable=True),
        sa.Column('trial_end', sa.DateTime(), nullable=True),
        sa.Column('max_users', sa.Integer(), nullable=True),
        sa.Column('max_stores', sa.Integer(), nullable=True),
        sa.Column('schema_name', sa.String(length=80), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index('ix_tenants_status', 'tenants', ['status'])

    # Create users table
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('account_locked_until', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'username', name='uq_users_tenant_username'),
        sa.UniqueConstraint('tenant_id', 'email', name='uq_users_tenant_email')
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_email', 'users', ['email'])

    # Create invoices table
    op.create_table('invoices',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('invoice_number', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('store_id', sa.String(length=64), nullable=True),
        sa.Column('counter_id', sa.String(length=64), nullable=True),
        sa.Column('customer_id', sa.String(length=64), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('is_interstate', sa.Boolean(), nullable=False, server_default=sa.false()),
        _money('subtotal'),
        _money('discount_amount'),
        _money('tax_amount'),
        _money('cgst_amount'),
        _money('sgst_amount'),
        _money('igst_amount'),
        _money('cess_amount'),
        _money('total_amount'),
        _money('paid_amount'),
        _money('balance_amount'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('completed_by', sa.String(length=36), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'invoice_number', name='uq_invoices_tenant_number')
    )
    op.create_index('ix_invoices_tenant_id', 'invoices', ['tenant_id'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_tenant_created', 'invoices', ['tenant_id', 'created_at'])

    # Create invoice_items table
    op.create_table('invoice_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('invoice_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('product_code', sa.String(length=64), nullable=True),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=True),
        _money('discount_value', nullable=True),
        _money('discount_amount'),
        _rate('tax_rate'),
        _money('tax_amount'),
        _rate('cgst_rate'),
        _money('cgst_amount'),
        _rate('sgst_rate'),
        _money('sgst_amount'),
        _rate('igst_rate'),
        _money('igst_amount'),
        _rate('cess_rate'),
        _money('cess_amount'),
        _money('line_total'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invoice_items_tenant_id', 'invoice_items', ['tenant_id'])
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])

    # Create payments table
    op.create_table('payments',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('invoice_id', sa.String(length=36), nullable=False),
        sa.Column('mode', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('reference_number', sa.String(length=128), nullable=True),
        sa.Column('card_last4', sa.String(length=4), nullable=True),
        sa.Column('upi_id', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payments_tenant_id', 'payments', ['tenant_id'])
    op.create_index('ix_payments_invoice_id', 'payments', ['invoice_id'])

    # Create held_invoices table
    op.create_table('held_invoices',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('hold_reference', sa.String(length=32), nullable=False),
        sa.Column('request_data', sa.JSON(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('held_by', sa.String(length=36), nullable=True),
        sa.Column('held_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'hold_reference', name='uq_held_invoices_reference')
    )
    op.create_index('ix_held_invoices_tenant_id', 'held_invoices', ['tenant_id'])

    # Create categories and brands tables
    op.create_table('categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_categories_tenant_id', 'categories', ['tenant_id'])

    op.create_table('brands',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_brands_tenant_id', 'brands', ['tenant_id'])

    # Create products table
    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('brand_id', sa.Integer(), nullable=True),
        _money('cost_price', nullable=True),
        sa.Column('selling_price', sa.Numeric(12, 2), nullable=False),
        _money('mrp', nullable=True),
        _rate('tax_rate'),
        sa.Column('hsn_code', sa.String(length=16), nullable=True),
        sa.Column('unit', sa.String(length=16), nullable=False, server_default='PCS'),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('track_stock', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='10'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_products_tenant_sku'),
        sa.UniqueConstraint('tenant_id', 'barcode', name='uq_products_tenant_barcode')
    )
    op.create_index('ix_products_tenant_id', 'products', ['tenant_id'])

    # Create stock and stock_movements tables
    op.create_table('stock',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.String(length=64), nullable=False, server_default='MAIN'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reserved_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('available_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'product_id', 'store_id', name='uq_stock_product_store')
    )
    op.create_index('ix_stock_tenant_id', 'stock', ['tenant_id'])
    op.create_index('ix_stock_product_id', 'stock', ['product_id'])

    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.String(length=64), nullable=False, server_default='MAIN'),
        sa.Column('movement_type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_movements_tenant_id', 'stock_movements', ['tenant_id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_tenant_created', 'stock_movements', ['tenant_id', 'created_at'])

    # Create suppliers table
    op.create_table('suppliers',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('gstin', sa.String(length=20), nullable=True),
        sa.Column('pan_number', sa.String(length=20), nullable=True),
        sa.Column('bank_name', sa.String(length=128), nullable=True),
        sa.Column('account_number', sa.String(length=64), nullable=True),
        sa.Column('ifsc_code', sa.String(length=16), nullable=True),
        sa.Column('credit_days', sa.Integer(), nullable=False, server_default='0'),
        _money('total_purchases'),
        _money('outstanding_balance'),
        sa.Column('purchase_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_purchase_date', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_suppliers_tenant_id', 'suppliers', ['tenant_id'])

    # Create notifications table
    op.create_table('notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('recipient', sa.String(length=255), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('template_data', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_tenant_id', 'notifications', ['tenant_id'])
    op.create_index('ix_notifications_status', 'notifications', ['status'])

    # Create metadata definition tables
    op.create_table('plugins',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('plugin_type', sa.String(length=64), nullable=False),
        sa.Column('version', sa.String(length=32), nullable=False, server_default='1.0.0'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_plugins_tenant_name')
    )
    op.create_index('ix_plugins_tenant_id', 'plugins', ['tenant_id'])

    op.create_table('business_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('trigger', sa.String(length=64), nullable=False),
        sa.Column('condition', sa.JSON(), nullable=False),
        sa.Column('actions', sa.JSON(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_business_rules_tenant_name')
    )
    op.create_index('ix_business_rules_tenant_id', 'business_rules', ['tenant_id'])
    op.create_index('ix_business_rules_lookup', 'business_rules', ['tenant_id', 'entity_type', 'trigger'])

    op.create_table('invoice_templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('template_type', sa.String(length=32), nullable=False, server_default='INVOICE'),
        sa.Column('format', sa.String(length=16), nullable=False, server_default='HTML'),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('variables', sa.JSON(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_invoice_templates_tenant_name')
    )
    op.create_index('ix_invoice_templates_tenant_id', 'invoice_templates', ['tenant_id'])

    op.create_table('workflow_definitions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_column(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('trigger', sa.String(length=64), nullable=False),
        sa.Column('steps', sa.JSON(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_workflows_tenant_name')
    )
    op.create_index('ix_workflow_definitions_tenant_id', 'workflow_definitions', ['tenant_id'])


def downgrade() -> None:
    for table in (
        'workflow_definitions',
        'invoice_templates',
        'business_rules',
        'plugins',
        'notifications',
        'suppliers',
        'stock_movements',
        'stock',
        'products',
        'brands',
        'categories',
        'held_invoices',
        'payments',
        'invoice_items',
        'invoices',
        'users',
        'tenants',
    ):
        op.drop_table(table)
