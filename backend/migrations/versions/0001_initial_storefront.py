"""initial storefront tables

Revision ID: 0001_initial_storefront
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_storefront'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('store_settings',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('slot', sa.Integer(), nullable=False),
        sa.Column('is_open', sa.Boolean(), nullable=False),
        sa.Column('opening_time', sa.String(length=5), nullable=False),
        sa.Column('closing_time', sa.String(length=5), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_by', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('slot', name='uq_store_settings_slot')
    )

    op.create_table('customers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)
    )
    op.create_index('ix_customers_name', 'customers', ['name'])

    op.create_table('delivery_addresses',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('street', sa.String(length=160), nullable=False),
        sa.Column('number', sa.String(length=16), nullable=False),
        sa.Column('complement', sa.String(length=120), nullable=True),
        sa.Column('neighborhood', sa.String(length=120), nullable=False),
        sa.Column('city', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)
    )
    op.create_index('ix_delivery_addresses_customer_id', 'delivery_addresses', ['customer_id'])

    op.create_table('categories',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=80), nullable=False, unique=True),
        sa.Column('display_order', sa.Integer(), nullable=False)
    )

    op.create_table('products',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('category_id', sa.String(length=36), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False)
    )
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_name', 'products', ['name'])

    op.create_table('orders',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('delivery_address_id', sa.String(length=36), sa.ForeignKey('delivery_addresses.id'), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('delivery_fee_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('pix_payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('estimated_delivery_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True)
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table('order_items',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('product_name', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_price_cents', sa.Integer(), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True)
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    # No unique constraint on order_id: one review per order is checked by the service
    op.create_table('order_reviews',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)
    )
    op.create_index('ix_order_reviews_order_id', 'order_reviews', ['order_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)
    )
    op.create_index('ix_audit_logs_actor', 'audit_logs', ['actor'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    for ix, table in (
        ('ix_audit_logs_action', 'audit_logs'),
        ('ix_audit_logs_actor', 'audit_logs'),
        ('ix_order_reviews_order_id', 'order_reviews'),
        ('ix_order_items_order_id', 'order_items'),
        ('ix_orders_created_at', 'orders'),
        ('ix_orders_status', 'orders'),
        ('ix_orders_customer_id', 'orders'),
        ('ix_products_name', 'products'),
        ('ix_products_category_id', 'products'),
        ('ix_delivery_addresses_customer_id', 'delivery_addresses'),
        ('ix_customers_name', 'customers'),
    ):
        op.drop_index(ix, table_name=table)
    for table in ('audit_logs', 'order_reviews', 'order_items', 'orders', 'products',
                  'categories', 'delivery_addresses', 'customers', 'store_settings'):
        op.drop_table(table)
