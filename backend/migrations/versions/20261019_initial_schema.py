"""Initial schema: stores, users, sessions, products, batches, inventory, supply orders

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Status columns are stored as VARCHAR (non-native enums) so SQLite and
PostgreSQL share one schema.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. STORES / USERS / SESSIONS
    # ==========================================================================
    op.create_table('stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_stores_code'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stores_code', 'stores', ['code'])
    op.create_index('ix_stores_is_active', 'stores', ['is_active'])

    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_store_id', 'users', ['store_id'])

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])

    # ==========================================================================
    # 2. PRODUCTS / BATCHES / INVENTORY
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_products_code'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_active', 'products', ['is_active'])

    op.create_table('product_batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('planned_quantity', sa.Integer(), nullable=False),
        sa.Column('produced_quantity', sa.Integer(), nullable=True),
        sa.Column('production_date', sa.Date(), nullable=True),
        sa.Column('expired_date', sa.Date(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_product_batches_code'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_product_batches_product_id', 'product_batches', ['product_id'])
    op.create_index('ix_product_batches_status', 'product_batches', ['status'])
    op.create_index('ix_product_batches_product_expiry', 'product_batches', ['product_id', 'expired_date'])

    op.create_table('inventory',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('disposed_reason', sa.String(length=16), nullable=True),
        sa.Column('disposed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('disposed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['batch_id'], ['product_batches.id']),
        sa.ForeignKeyConstraint(['disposed_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'batch_id', name='uq_inventory_store_batch'),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_inventory_store_id', 'inventory', ['store_id'])
    op.create_index('ix_inventory_batch_id', 'inventory', ['batch_id'])
    op.create_index('ix_inventory_store_status', 'inventory', ['store_id', 'status'])

    # ==========================================================================
    # 3. SUPPLY ORDERS
    # ==========================================================================
    op.create_table('supply_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('reviewed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('delivered_by_user_id', sa.Integer(), nullable=True),
        sa.Column('received_by_user_id', sa.Integer(), nullable=True),
        sa.Column('stocked_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stocked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['reviewed_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['delivered_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['received_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['stocked_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['cancelled_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_supply_orders_code'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_supply_orders_store_id', 'supply_orders', ['store_id'])
    op.create_index('ix_supply_orders_status', 'supply_orders', ['status'])
    op.create_index('ix_supply_orders_store_status', 'supply_orders', ['store_id', 'status'])

    op.create_table('supply_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supply_order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('requested_quantity', sa.Integer(), nullable=False),
        sa.Column('approved_quantity', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['supply_order_id'], ['supply_orders.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('supply_order_id', 'product_id', name='uq_supply_order_items_order_product'),
        sa.CheckConstraint('requested_quantity > 0', name='ck_supply_order_items_requested_positive'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_supply_order_items_supply_order_id', 'supply_order_items', ['supply_order_id'])
    op.create_index('ix_supply_order_items_product_id', 'supply_order_items', ['product_id'])

    op.create_table('supply_order_item_batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supply_order_item_id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('inventory_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('receipted_quantity', sa.Integer(), nullable=True),
        sa.Column('stocked_quantity', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['supply_order_item_id'], ['supply_order_items.id']),
        sa.ForeignKeyConstraint(['batch_id'], ['product_batches.id']),
        sa.ForeignKeyConstraint(['inventory_id'], ['inventory.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_item_batches_quantity_positive'),
        sa.CheckConstraint(
            'receipted_quantity IS NULL OR (receipted_quantity >= 0 AND receipted_quantity <= quantity)',
            name='ck_item_batches_receipted_bounds',
        ),
        sa.CheckConstraint(
            'stocked_quantity IS NULL OR (stocked_quantity >= 0 AND stocked_quantity <= receipted_quantity)',
            name='ck_item_batches_stocked_bounds',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_supply_order_item_batches_supply_order_item_id', 'supply_order_item_batches', ['supply_order_item_id'])
    op.create_index('ix_supply_order_item_batches_batch_id', 'supply_order_item_batches', ['batch_id'])
    op.create_index('ix_supply_order_item_batches_inventory_id', 'supply_order_item_batches', ['inventory_id'])


def downgrade():
    op.drop_table('supply_order_item_batches')
    op.drop_table('supply_order_items')
    op.drop_table('supply_orders')
    op.drop_table('inventory')
    op.drop_table('product_batches')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('stores')
