"""Create storefront tables

Revision ID: sf001_create_storefront_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
import sqlmodel.sql.sqltypes

# revision identifiers, used by Alembic.
revision = 'sf001_create_storefront_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    # ### 1. 用户、地址 ###
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'addresses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('full_name', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('phone', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('line1', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('line2', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('city', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column('state', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column('pincode', sqlmodel.sql.sqltypes.AutoString(length=16), nullable=False),
        sa.Column('country', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_addresses_user_id', 'addresses', ['user_id'])

    # ### 2. 商品目录、店铺设置 ###
    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('price', sa.Numeric(15, 2), nullable=False),
        sa.Column('sale_price', sa.Numeric(15, 2), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])
    op.create_index('ix_product_variants_sku', 'product_variants', ['sku'], unique=True)

    op.create_table(
        'store_settings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_name', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('store_email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('store_phone', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column('address', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('city', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('state', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('pincode', sqlmodel.sql.sqltypes.AutoString(length=16), nullable=True),
        sa.Column('country', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column('is_tax_enabled', sa.Boolean(), nullable=False),
        sa.Column('tax_name', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        sa.Column('tax_percentage', sa.Numeric(10, 2), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )

    # ### 3. 库存 ###
    op.create_table(
        'inventory_levels',
        sa.Column(
            'variant_id',
            sa.Uuid(),
            sa.ForeignKey('product_variants.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('available', sa.Integer(), nullable=False),
        sa.Column('reserved', sa.Integer(), nullable=False),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('variant_id'),
    )
    op.create_table(
        'stock_ledger',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'variant_id',
            sa.Uuid(),
            sa.ForeignKey('product_variants.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('change_amount', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('reference_type', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column('reference_id', sa.Uuid(), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stock_ledger_variant_id', 'stock_ledger', ['variant_id'])

    # ### 4. 优惠券 ###
    op.create_table(
        'coupons',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=False),
        sa.Column('discount_value', sa.Numeric(15, 2), nullable=False),
        sa.Column('min_order_amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('max_usage', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False),
        _timestamp('starts_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_coupons_code', 'coupons', ['code'], unique=True)

    # ### 5. 订单、支付 ###
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('subtotal', sa.Numeric(15, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('shipping_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('currency', sqlmodel.sql.sqltypes.AutoString(length=8), nullable=False),
        sa.Column(
            'shipping_address_id',
            sa.Uuid(),
            sa.ForeignKey('addresses.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'billing_address_id',
            sa.Uuid(),
            sa.ForeignKey('addresses.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('coupon_id', sa.Uuid(), sa.ForeignKey('coupons.id', ondelete='SET NULL'), nullable=True),
        sa.Column('courier_name', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.Column('courier_company_id', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column('shiprocket_order_id', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('shiprocket_shipment_id', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('awb_code', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'product_variant_id',
            sa.Uuid(),
            sa.ForeignKey('product_variants.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_at_purchase', sa.Numeric(15, 2), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'fulfillments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tracking_number', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('carrier', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.Column('status', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_fulfillments_order_id', 'fulfillments', ['order_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('method', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        sa.Column('merchant_transaction_id', sa.String(length=64), nullable=False),
        sa.Column('provider_transaction_id', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('raw_payload', sa.JSON(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])
    op.create_index(
        'ix_payments_merchant_transaction_id', 'payments', ['merchant_transaction_id'], unique=True
    )

    op.create_table(
        'coupon_usage',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('coupon_id', sa.Uuid(), sa.ForeignKey('coupons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        _timestamp('applied_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
    )
    op.create_index('ix_coupon_usage_coupon_id', 'coupon_usage', ['coupon_id'])

    # ### 6. 审计日志 ###
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('admin_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('old_value', sa.JSON(), nullable=True),
        sa.Column('new_value', sa.JSON(), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    for table in (
        'audit_logs',
        'coupon_usage',
        'payments',
        'fulfillments',
        'order_items',
        'orders',
        'coupons',
        'stock_ledger',
        'inventory_levels',
        'store_settings',
        'product_variants',
        'products',
        'addresses',
        'users',
    ):
        op.drop_table(table)
