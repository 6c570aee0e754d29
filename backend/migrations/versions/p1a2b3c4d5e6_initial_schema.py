"""initial schema

Revision ID: p1a2b3c4d5e6
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the PharmaPOS schema:
- users / session_tokens: accounts with a single role ("user" or "admin")
  and SHA-256-hashed bearer tokens
- products: catalog with on-row stock quantity and an optimistic version_id
- sales: append-only sale rows, one per applied basket line
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'p1a2b3c4d5e6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('name', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('surname', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("role in ('user','admin')", name='ck_users_role'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # ============================================================================
    # session_tokens: only the token hash is stored
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_session_tokens_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_session_tokens'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)

    # ============================================================================
    # products: stock lives on the row, never below zero
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('purchase_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('supplier_id', sa.String(length=64), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_product_code', 'products', ['product_code'], unique=True)
    op.create_index('ix_products_quantity', 'products', ['quantity'])

    # ============================================================================
    # sales: one row per applied basket line
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity_sold', sa.Integer(), nullable=False),
        sa.Column('sale_date', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('quantity_sold > 0', name='ck_sales_quantity_positive'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_sales_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_sales'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_product_id', 'sales', ['product_id'])
    op.create_index('ix_sales_sale_date', 'sales', ['sale_date'])
    op.create_index('ix_sales_product_date', 'sales', ['product_id', 'sale_date'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('sales')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('users')
