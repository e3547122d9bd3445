"""Create storefront tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
    ]


def upgrade() -> None:
    # Users 테이블
    op.create_table(
        'users',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='customer'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('referral_code', sa.String(20), nullable=True),
        sa.Column('referred_by_id', _uuid(), nullable=True),
        sa.Column('referral_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_referral_rewards', sa.DECIMAL(10, 2), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['referred_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('referral_code', name='uq_users_referral_code'),
        sa.CheckConstraint("role IN ('customer', 'admin')", name='ck_users_check_user_role'),
        sa.CheckConstraint(
            "status IN ('active', 'suspended', 'deleted')", name='ck_users_check_user_status'
        ),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_status', 'users', ['status'])

    # Categories / Products / Variants
    op.create_table(
        'categories',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('name', name='uq_categories_name'),
    )

    op.create_table(
        'products',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', _uuid(), nullable=True),
        sa.Column('total_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.CheckConstraint('total_stock >= 0', name='ck_products_check_total_stock_non_negative'),
        sa.CheckConstraint(
            "status IN ('active', 'inactive')", name='ck_products_check_product_status'
        ),
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('idx_products_category', 'products', ['category_id'])

    op.create_table(
        'product_variants',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('product_id', _uuid(), nullable=False),
        sa.Column('sku', sa.String(100), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('sku', name='uq_product_variants_sku'),
        sa.CheckConstraint('price >= 0', name='ck_product_variants_check_variant_price_non_negative'),
        sa.CheckConstraint('stock >= 0', name='ck_product_variants_check_variant_stock_non_negative'),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    # Promotions (할인 코드 + 쿠폰)
    op.create_table(
        'promotions',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('source', sa.String(20), nullable=False, server_default='discount'),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', sa.String(20), nullable=False),
        sa.Column('discount_value', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('minimum_amount', sa.DECIMAL(10, 2), nullable=False, server_default='0'),
        sa.Column('maximum_discount', sa.DECIMAL(10, 2), nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=False),
        sa.Column('valid_to', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_usage', sa.Integer(), nullable=True),
        sa.Column('max_usage_per_user', sa.Integer(), nullable=True),
        sa.Column('owner_user_id', _uuid(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('code', name='uq_promotions_code'),
        sa.CheckConstraint('discount_value > 0', name='ck_promotions_check_discount_value_positive'),
        sa.CheckConstraint('valid_to > valid_from', name='ck_promotions_check_valid_date_range'),
        sa.CheckConstraint('minimum_amount >= 0', name='ck_promotions_check_minimum_non_negative'),
        sa.CheckConstraint('usage_count >= 0', name='ck_promotions_check_usage_non_negative'),
        sa.CheckConstraint(
            "discount_type IN ('percentage', 'fixed')", name='ck_promotions_check_discount_type'
        ),
        sa.CheckConstraint("source IN ('discount', 'coupon')", name='ck_promotions_check_source'),
    )
    op.create_index('ix_promotions_code', 'promotions', ['code'])
    op.create_index('ix_promotions_owner_user_id', 'promotions', ['owner_user_id'])
    op.create_index('idx_promotions_valid_dates', 'promotions', ['valid_from', 'valid_to'])

    op.create_table(
        'user_promotion_usages',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('promotion_id', _uuid(), nullable=False),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['promotion_id'], ['promotions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'promotion_id', name='uq_user_promotion_usage'),
        sa.CheckConstraint(
            'usage_count >= 0', name='ck_user_promotion_usages_check_user_usage_non_negative'
        ),
    )
    op.create_index('ix_user_promotion_usages_user_id', 'user_promotion_usages', ['user_id'])
    op.create_index(
        'ix_user_promotion_usages_promotion_id', 'user_promotion_usages', ['promotion_id']
    )

    # Offers
    op.create_table(
        'offers',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('offer_type', sa.String(20), nullable=False),
        sa.Column('discount_type', sa.String(20), nullable=False),
        sa.Column('discount_value', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('minimum_amount', sa.DECIMAL(10, 2), nullable=False, server_default='0'),
        sa.Column('maximum_discount', sa.DECIMAL(10, 2), nullable=True),
        sa.Column('category_id', _uuid(), nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=False),
        sa.Column('valid_to', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_usage', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.CheckConstraint('discount_value > 0', name='ck_offers_check_offer_value_positive'),
        sa.CheckConstraint('valid_to > valid_from', name='ck_offers_check_offer_date_range'),
        sa.CheckConstraint(
            "offer_type IN ('product', 'category', 'referral')", name='ck_offers_check_offer_type'
        ),
        sa.CheckConstraint(
            "discount_type IN ('percentage', 'fixed')", name='ck_offers_check_offer_discount_type'
        ),
    )
    op.create_index('idx_offers_valid_dates', 'offers', ['valid_from', 'valid_to'])

    op.create_table(
        'offer_products',
        sa.Column('offer_id', _uuid(), primary_key=True),
        sa.Column('product_id', _uuid(), primary_key=True),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
    )

    # Orders
    op.create_table(
        'orders',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('order_number', sa.String(32), nullable=False),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('shipping_recipient_name', sa.String(100), nullable=False),
        sa.Column('shipping_address_line1', sa.String(255), nullable=False),
        sa.Column('shipping_address_line2', sa.String(255), nullable=True),
        sa.Column('shipping_city', sa.String(100), nullable=False),
        sa.Column('shipping_state', sa.String(100), nullable=False),
        sa.Column('shipping_postal_code', sa.String(20), nullable=False),
        sa.Column('shipping_country', sa.String(100), nullable=False, server_default='India'),
        sa.Column('shipping_phone_number', sa.String(20), nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('razorpay_order_id', sa.String(100), nullable=True),
        sa.Column('transaction_id', sa.String(100), nullable=True),
        sa.Column('subtotal', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('subtotal_after_discount', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('shipping', sa.DECIMAL(10, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('discount_id', _uuid(), nullable=True),
        sa.Column('discount_code', sa.String(50), nullable=True),
        sa.Column('discount_name', sa.String(200), nullable=True),
        sa.Column('discount_type', sa.String(20), nullable=True),
        sa.Column('discount_value', sa.DECIMAL(10, 2), nullable=True),
        sa.Column('discount_amount', sa.DECIMAL(10, 2), nullable=False, server_default='0'),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('return_rejection_reason', sa.Text(), nullable=True),
        sa.Column('return_verified_by', _uuid(), nullable=True),
        sa.Column('return_verified_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('order_number', name='uq_orders_order_number'),
        sa.CheckConstraint('subtotal >= 0', name='ck_orders_check_subtotal_non_negative'),
        sa.CheckConstraint('shipping >= 0', name='ck_orders_check_shipping_non_negative'),
        sa.CheckConstraint('total >= 0', name='ck_orders_check_total_non_negative'),
        sa.CheckConstraint(
            "payment_method IN ('cod', 'online', 'wallet')", name='ck_orders_check_payment_method'
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name='ck_orders_check_payment_status',
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'processing', 'shipped', 'delivered', "
            "'cancelled', 'returned', 'return_verified', 'rejected')",
            name='ck_orders_check_order_status',
        ),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('idx_orders_user_created', 'orders', ['user_id', 'created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('order_id', _uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', _uuid(), nullable=False),
        sa.Column('product_variant_id', _uuid(), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('variant_name', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('item_status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('item_payment_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('refunded_amount', sa.DECIMAL(10, 2), nullable=True),
        sa.Column('cancelled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('returned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('return_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['product_variant_id'], ['product_variants.id']),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_check_order_item_quantity_positive'),
        sa.CheckConstraint('price >= 0', name='ck_order_items_check_order_item_price_non_negative'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_variant_id', 'order_items', ['product_variant_id'])

    op.create_table(
        'order_offers',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('order_id', _uuid(), nullable=False),
        sa.Column('offer_id', _uuid(), nullable=False),
        sa.Column('offer_name', sa.String(200), nullable=False),
        sa.Column('product_variant_id', _uuid(), nullable=True),
        sa.Column('offer_amount', sa.DECIMAL(10, 2), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.CheckConstraint('offer_amount >= 0', name='ck_order_offers_check_offer_amount_non_negative'),
    )
    op.create_index('ix_order_offers_order_id', 'order_offers', ['order_id'])

    # Wallets
    op.create_table(
        'wallets',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), nullable=False),
        sa.Column('balance', sa.DECIMAL(12, 2), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', name='uq_wallets_user_id'),
        sa.CheckConstraint('balance >= 0', name='ck_wallets_check_wallet_balance_non_negative'),
    )

    op.create_table(
        'wallet_transactions',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('wallet_id', _uuid(), nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('amount', sa.DECIMAL(12, 2), nullable=False),
        sa.Column('balance_after', sa.DECIMAL(12, 2), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('payment_id', sa.String(100), nullable=True),
        sa.Column('order_id', _uuid(), nullable=True),
        sa.Column('order_item_id', _uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.ForeignKeyConstraint(['wallet_id'], ['wallets.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('payment_id', name='uq_wallet_transactions_payment_id'),
        sa.CheckConstraint('amount > 0', name='ck_wallet_transactions_check_wallet_tx_amount_positive'),
        sa.CheckConstraint(
            "type IN ('credit', 'debit')", name='ck_wallet_transactions_check_wallet_tx_type'
        ),
    )
    op.create_index('ix_wallet_transactions_wallet_id', 'wallet_transactions', ['wallet_id'])
    op.create_index('ix_wallet_transactions_created_at', 'wallet_transactions', ['created_at'])
    op.create_index(
        'idx_wallet_tx_wallet_created', 'wallet_transactions', ['wallet_id', 'created_at']
    )

    # Referrals
    op.create_table(
        'referrals',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('referrer_id', _uuid(), nullable=False),
        sa.Column('referred_id', _uuid(), nullable=True),
        sa.Column('referral_code', sa.String(20), nullable=False),
        sa.Column('referral_token', sa.String(80), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('reward_claimed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reward_promotion_id', _uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reward_promotion_id'], ['promotions.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'expired')", name='ck_referrals_check_referral_status'
        ),
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_referral_code', 'referrals', ['referral_code'], unique=True)
    op.create_index('ix_referrals_referral_token', 'referrals', ['referral_token'], unique=True)


def downgrade() -> None:
    op.drop_table('referrals')
    op.drop_table('wallet_transactions')
    op.drop_table('wallets')
    op.drop_table('order_offers')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('offer_products')
    op.drop_table('offers')
    op.drop_table('user_promotion_usages')
    op.drop_table('promotions')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_table('users')
