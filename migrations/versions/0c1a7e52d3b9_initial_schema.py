"""initial schema

Revision ID: 0c1a7e52d3b9
Revises:
Create Date: 2026-10-17 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0c1a7e52d3b9'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(12, 2)


def _ts(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _address_columns():
    return [
        sa.Column('name', sa.String(128), nullable=True),
        sa.Column('line1', sa.String(), nullable=False),
        sa.Column('line2', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=False),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('landmark', sa.String(), nullable=True),
        sa.Column('postal_code', sa.String(), nullable=False),
        sa.Column('country', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('public_id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(320), nullable=True, unique=True),
        sa.Column('name', sa.String(128), nullable=True),
        _ts('created_at'), _ts('updated_at'), _ts('deleted_at', True),
    )
    op.create_index('ix_users_public_id', 'users', ['public_id'], unique=True)

    op.create_table(
        'address',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_address_columns(),
        _ts('created_at'), _ts('updated_at'), _ts('deleted_at', True),
    )
    op.create_index('ix_address_user_id', 'address', ['user_id'])

    op.create_table(
        'shippingaddress',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('address_id', sa.Integer(), sa.ForeignKey('address.id', ondelete='SET NULL'), nullable=True),
        *_address_columns(),
        _ts('created_at'),
    )
    op.create_index('ix_shipping_address_user_address', 'shippingaddress', ['user_id', 'address_id'])

    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('public_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('stock_qty', sa.Integer(), nullable=False),
        _ts('created_at'), _ts('updated_at'), _ts('deleted_at', True),
    )
    op.create_index('ix_product_public_id', 'product', ['public_id'], unique=True)

    op.create_table(
        'cartitem',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('subtotal', MONEY, nullable=False),
        _ts('created_at'), _ts('updated_at'),
        sa.UniqueConstraint('user_id', 'product_id', name='uq_cart_user_product'),
    )
    op.create_index('ix_cartitem_user_id', 'cartitem', ['user_id'])

    op.create_table(
        'coupon',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('min_order_amount', MONEY, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _ts('expires_at', True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        _ts('created_at'), _ts('updated_at'), _ts('deleted_at', True),
    )
    op.create_index('ix_coupon_code', 'coupon', ['code'], unique=True)

    op.create_table(
        'checkoutsession',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('public_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('total_amount', MONEY, nullable=False),
        sa.Column('discount_amount', MONEY, nullable=False),
        sa.Column('final_amount', MONEY, nullable=False),
        sa.Column('item_count', sa.Integer(), nullable=False),
        sa.Column('coupon_code', sa.String(20), nullable=True),
        sa.Column('coupon_applied', sa.Boolean(), nullable=False),
        sa.Column('shipping_address_id', sa.Integer(),
                  sa.ForeignKey('shippingaddress.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(16), nullable=False),
        _ts('created_at'), _ts('updated_at'),
    )
    op.create_index('ix_checkoutsession_public_id', 'checkoutsession', ['public_id'], unique=True)
    op.create_index('uq_checkout_pending_user', 'checkoutsession', ['user_id'], unique=True,
                    postgresql_where=sa.text("status = 'pending'"))

    op.create_table(
        'checkoutitem',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('checkout_id', sa.Integer(),
                  sa.ForeignKey('checkoutsession.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('subtotal', MONEY, nullable=False),
        sa.UniqueConstraint('checkout_id', 'product_id', name='uq_checkout_item_product'),
    )
    op.create_index('ix_checkoutitem_checkout_id', 'checkoutitem', ['checkout_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('public_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('checkout_id', sa.Integer(),
                  sa.ForeignKey('checkoutsession.id', ondelete='SET NULL'), nullable=True),
        sa.Column('total_amount', MONEY, nullable=False),
        sa.Column('discount_amount', MONEY, nullable=False),
        sa.Column('final_amount', MONEY, nullable=False),
        sa.Column('order_status', sa.String(32), nullable=False),
        sa.Column('delivery_status', sa.String(32), nullable=False),
        sa.Column('refund_status', sa.String(32), nullable=True),
        sa.Column('payment_method', sa.String(16), nullable=False),
        sa.Column('shipping_address_id', sa.Integer(),
                  sa.ForeignKey('shippingaddress.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('coupon_applied', sa.Boolean(), nullable=False),
        sa.Column('coupon_code', sa.String(20), nullable=True),
        sa.Column('has_return_request', sa.Boolean(), nullable=False),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False),
        _ts('created_at'), _ts('updated_at'), _ts('delivered_at', True),
    )
    op.create_index('ix_orders_public_id', 'orders', ['public_id'], unique=True)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_order_status', 'orders', ['order_status'])

    op.create_table(
        'orderitem',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.UniqueConstraint('order_id', 'product_id', name='uq_order_product'),
    )
    op.create_index('ix_orderitem_order_id', 'orderitem', ['order_id'])

    op.create_table(
        'payment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('currency', sa.String(8), nullable=False),
        sa.Column('payment_method', sa.String(16), nullable=False),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('razorpay_order_id', sa.String(128), nullable=True, unique=True),
        sa.Column('razorpay_payment_id', sa.String(128), nullable=True),
        sa.Column('razorpay_signature', sa.String(256), nullable=True),
        _ts('created_at'), _ts('updated_at'), _ts('paid_at', True),
    )
    op.create_index('ix_payment_status', 'payment', ['status'])

    op.create_table(
        'cancellationrequest',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('previous_status', sa.String(32), nullable=False),
        sa.Column('is_stock_updated', sa.Boolean(), nullable=False),
        _ts('created_at'), _ts('decided_at', True),
    )
    op.create_index('ix_cancellationrequest_user_id', 'cancellationrequest', ['user_id'])
    op.create_index('ix_cancellationrequest_status', 'cancellationrequest', ['status'])

    op.create_table(
        'returnrequest',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=True),
        _ts('requested_at'), _ts('approved_at', True), _ts('rejected_at', True),
        sa.Column('refund_initiated', sa.Boolean(), nullable=False),
        sa.Column('refund_amount', MONEY, nullable=True),
        sa.Column('refund_completed', sa.Boolean(), nullable=False),
        sa.Column('is_order_reached_seller', sa.Boolean(), nullable=False),
        _ts('order_returned_to_seller_at', True),
        sa.Column('is_stock_updated', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_returnrequest_user_id', 'returnrequest', ['user_id'])

    op.create_table(
        'wallet',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('balance', MONEY, nullable=False),
        _ts('created_at'), _ts('updated_at'),
    )

    op.create_table(
        'wallettransaction',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('wallet_id', sa.Integer(), sa.ForeignKey('wallet.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('transaction_type', sa.String(32), nullable=False),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('reference_type', sa.String(32), nullable=True),
        sa.Column('balance_after', MONEY, nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        _ts('created_at'),
    )
    op.create_index('ix_wallettransaction_wallet_id', 'wallettransaction', ['wallet_id'])
    op.create_index('ix_wallettransaction_user_id', 'wallettransaction', ['user_id'])
    op.create_index('ix_wallettransaction_transaction_type', 'wallettransaction', ['transaction_type'])


def downgrade():
    for table in ('wallettransaction', 'wallet', 'returnrequest', 'cancellationrequest', 'payment',
                  'orderitem', 'orders', 'checkoutitem', 'checkoutsession', 'coupon', 'cartitem',
                  'product', 'shippingaddress', 'address', 'users'):
        op.drop_table(table)
