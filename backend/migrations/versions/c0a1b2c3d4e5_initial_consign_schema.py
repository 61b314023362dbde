"""initial consign schema

Revision ID: c0a1b2c3d4e5
Revises:
Create Date: 2026-10-19 00:00:00.000000

This migration creates the complete consignment schema from scratch:
- users, session_tokens: attribution and bearer sessions
- stores, locations, vendors: the fixed four-kind location graph
- products, product_pricing, barcodes, store_price_overrides: catalog
- movements: append-only movement ledger
- store_counts, store_payments: reconciliation inputs
- alerts: operator signals
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c0a1b2c3d4e5'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*names):
    return [
        sa.Column(name, sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP'))
        for name in names
    ]


def upgrade():
    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash', name='uq_session_tokens_hash'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])

    # ============================================================================
    # stores / locations / vendors
    # ============================================================================
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps('created_at', 'updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stores_active', 'stores', ['is_active'])

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps('created_at'),
        sa.CheckConstraint("parent_id IS NULL OR kind = 'SHELF'", name='ck_locations_parent_shelf_only'),
        sa.CheckConstraint("store_id IS NULL OR kind = 'STORE'", name='ck_locations_store_link_store_only'),
        sa.ForeignKeyConstraint(['parent_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_locations_kind', 'locations', ['kind'])
    op.create_index('ix_locations_parent_id', 'locations', ['parent_id'])
    op.create_index('ix_locations_kind_active', 'locations', ['kind', 'is_active'])

    op.create_table(
        'vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=64), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps('created_at', 'updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendors_active', 'vendors', ['is_active'])

    # ============================================================================
    # catalog
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('variant', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('packs_per_box', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps('created_at', 'updated_at'),
        sa.CheckConstraint('packs_per_box > 0', name='ck_products_packs_per_box_positive'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku', name='uq_products_sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_active', 'products', ['is_active'])

    op.create_table(
        'product_pricing',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('cost_per_box_cents', sa.Integer(), nullable=False),
        sa.Column('retail_price_per_pack_cents', sa.Integer(), nullable=False),
        sa.Column('retail_price_per_box_cents', sa.Integer(), nullable=False),
        sa.Column('wholesale_price_per_box_cents', sa.Integer(), nullable=False),
        *_timestamps('updated_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', name='uq_product_pricing_product'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'barcodes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('value', sa.String(length=128), nullable=False),
        sa.Column('unit_type', sa.String(length=8), nullable=False),
        sa.Column('symbology', sa.String(length=32), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=True),
        *_timestamps('created_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('value', name='uq_barcodes_value'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_barcodes_product', 'barcodes', ['product_id'])

    op.create_table(
        'store_price_overrides',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('wholesale_price_per_box_cents', sa.Integer(), nullable=False),
        *_timestamps('updated_at'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'product_id', name='uq_store_price_overrides_store_product'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_store_price_overrides_store_id', 'store_price_overrides', ['store_id'])
    op.create_index('ix_store_price_overrides_product_id', 'store_price_overrides', ['product_id'])

    # ============================================================================
    # movements: append-only ledger
    # ============================================================================
    op.create_table(
        'movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('unit_type', sa.String(length=8), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('from_location_id', sa.Integer(), nullable=True),
        sa.Column('to_location_id', sa.Integer(), nullable=True),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('cost_per_box_cents', sa.Integer(), nullable=True),
        sa.Column('price_snapshot_cents', sa.Integer(), nullable=True),
        sa.Column('adjustment_reason', sa.Text(), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('performed_by_user_id', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('barcode_scanned', sa.String(length=128), nullable=True),
        sa.Column('performed_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps('created_at'),
        sa.Column('is_reversal', sa.Boolean(), nullable=False),
        sa.Column('reverses_id', sa.Integer(), nullable=True),
        sa.Column('reversed_by_id', sa.Integer(), nullable=True),
        sa.Column('linked_movement_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_movements_quantity_positive'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['from_location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['to_location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['performed_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['reverses_id'], ['movements.id']),
        sa.ForeignKeyConstraint(['reversed_by_id'], ['movements.id']),
        sa.ForeignKeyConstraint(['linked_movement_id'], ['movements.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reverses_id'),
        sa.UniqueConstraint('reversed_by_id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_movements_action', 'movements', ['action'])
    op.create_index('ix_movements_product_id', 'movements', ['product_id'])
    op.create_index('ix_movements_vendor_id', 'movements', ['vendor_id'])
    op.create_index('ix_movements_performed_by_user_id', 'movements', ['performed_by_user_id'])
    op.create_index('ix_movements_performed_at', 'movements', ['performed_at'])
    op.create_index('ix_movements_is_reversal', 'movements', ['is_reversal'])
    op.create_index('ix_movements_linked_movement_id', 'movements', ['linked_movement_id'])
    op.create_index('ix_movements_product_unit', 'movements', ['product_id', 'unit_type'])
    op.create_index('ix_movements_store_action_performed', 'movements', ['store_id', 'action', 'performed_at'])
    op.create_index('ix_movements_from_location', 'movements', ['from_location_id'])
    op.create_index('ix_movements_to_location', 'movements', ['to_location_id'])

    # ============================================================================
    # store_counts / store_payments
    # ============================================================================
    op.create_table(
        'store_counts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('count_date', sa.Date(), nullable=False),
        sa.Column('boxes_remaining', sa.Integer(), nullable=False),
        sa.Column('counted_by_user_id', sa.Integer(), nullable=False),
        *_timestamps('created_at'),
        sa.CheckConstraint('boxes_remaining >= 0', name='ck_store_counts_remaining_non_negative'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['counted_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'product_id', 'count_date', name='uq_store_counts_store_product_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_store_counts_store_product_date', 'store_counts', ['store_id', 'product_id', 'count_date'])

    op.create_table(
        'store_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('method', sa.String(length=32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('collected_by_user_id', sa.Integer(), nullable=False),
        *_timestamps('created_at'),
        sa.CheckConstraint('amount_cents > 0', name='ck_store_payments_amount_positive'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['collected_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_store_payments_store_date', 'store_payments', ['store_id', 'payment_date'])

    # ============================================================================
    # alerts
    # ============================================================================
    op.create_table(
        'alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('alert_type', sa.String(length=32), nullable=False),
        sa.Column('severity', sa.String(length=16), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('acknowledged_by_user_id', sa.Integer(), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps('created_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['acknowledged_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['resolved_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_alerts_status', 'alerts', ['status'])
    op.create_index('ix_alerts_store_id', 'alerts', ['store_id'])
    op.create_index('ix_alerts_type_status', 'alerts', ['alert_type', 'status'])
    op.create_index('ix_alerts_product_location', 'alerts', ['product_id', 'location_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('alerts')
    op.drop_table('store_payments')
    op.drop_table('store_counts')
    op.drop_table('movements')
    op.drop_table('store_price_overrides')
    op.drop_table('barcodes')
    op.drop_table('product_pricing')
    op.drop_table('products')
    op.drop_table('vendors')
    op.drop_table('locations')
    op.drop_table('stores')
    op.drop_table('session_tokens')
    op.drop_table('users')
