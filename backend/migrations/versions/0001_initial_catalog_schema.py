"""initial catalog schema

Revision ID: 0001_initial_catalog
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete shelfkeep schema:
- categories: shared, case-insensitively unique vocabulary
- products: owner-scoped catalog keyed by a globally unique barcode
- stock_movements: append-only non-sale stock ledger
- sales_orders / sales_items: recorded sales with price snapshots

Foreign key rules:
- products.category_id -> categories.id      ON DELETE SET NULL
- stock_movements.product_id -> products     ON DELETE CASCADE
- sales_items.order_id -> sales_orders       ON DELETE CASCADE
- sales_items.product_id -> products         ON DELETE RESTRICT
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_catalog'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # categories
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    op.create_index('uq_categories_name_lower', 'categories', [sa.text('lower(name)')], unique=True)

    # ============================================================================
    # products
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('barcode', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('unit_type', sa.String(length=20), nullable=False, server_default='pcs'),
        sa.Column('purchase_cost', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('selling_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reorder_level', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('image', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('product_id'),
        sa.UniqueConstraint('barcode'),
        sa.CheckConstraint(
            "unit_type IN ('pcs','pack','box','kg','g','L','mL','dozen')",
            name='ck_products_unit_type',
        ),
        sa.CheckConstraint('purchase_cost >= 0', name='ck_products_purchase_cost'),
        sa.CheckConstraint('selling_price > 0', name='ck_products_selling_price'),
    )
    op.create_index('ix_products_owner_id', 'products', ['owner_id'])
    op.create_index('ix_products_owner_active_created', 'products', ['owner_id', 'is_active', 'created_at'])
    op.create_index('ix_products_owner_category', 'products', ['owner_id', 'category_id'])

    # ============================================================================
    # stock_movements: append-only ledger
    # ============================================================================
    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('actor_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "type IN ('add_stock','return','adjustment','wastage')",
            name='ck_stock_movements_type',
        ),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_product_created', 'stock_movements', ['product_id', 'created_at'])

    # ============================================================================
    # sales_orders / sales_items
    # ============================================================================
    op.create_table(
        'sales_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_orders_owner_created', 'sales_orders', ['owner_id', 'created_at'])

    op.create_table(
        'sales_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_selling_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('line_total', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['order_id'], ['sales_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_sales_items_quantity'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_items_order_id', 'sales_items', ['order_id'])
    op.create_index('ix_sales_items_product_id', 'sales_items', ['product_id'])


def downgrade():
    op.drop_table('sales_items')
    op.drop_table('sales_orders')
    op.drop_table('stock_movements')
    op.drop_table('products')
    op.drop_index('uq_categories_name_lower', table_name='categories')
    op.drop_table('categories')
