import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint, Uuid, text
from uuid6 import uuid7
from sqlmodel import Column, SQLModel, Field, String
from shopcore.common.utils import now

MONEY = Numeric(12, 2)
ZERO = Decimal("0.00")


# ------------------------------------------------------------------------------------- status enums

class OrderStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    PENDING_CANCELLATION = "pending_cancellation"
    CANCELLED = "cancelled"
    RETURN_REQUESTED = "return_requested"
    RETURN_APPROVED = "return_approved"
    REFUNDED = "refunded"

class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class RefundStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"

class CheckoutStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

class PaymentMethod(str, enum.Enum):
    COD = "cod"
    RAZORPAY = "razorpay"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    REFUNDED = "refunded"

class CancellationStatus(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"

class WalletTransactionType(str, enum.Enum):
    REFUND = "refund"

class WalletReferenceType(str, enum.Enum):
    ORDER_CANCELLATION = "order_cancellation"
    RETURN = "return"


# ------------------------------------------------------------------------------------- users & addresses
# owned by the auth service, the core only reads them

class Users(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False)
    )
    email: Optional[str] = Field(default=None,sa_column=Column(String(320), nullable=True,unique=True))
    name: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True)))


class Address(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"),
            index=True,
            nullable=False))
    name: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    line1: str
    line2: Optional[str] = None
    city: str
    state: Optional[str] = None
    landmark: Optional[str] = None
    postal_code: str
    country: str = Field(default="IN",nullable=False)
    phone: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True))


# Frozen copy of an Address. Rows are insert only, orders point at the copy they were placed with.
class ShippingAddress(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False))
    address_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("address.id", ondelete="SET NULL"), nullable=True))
    name: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    line1: str
    line2: Optional[str] = None
    city: str
    state: Optional[str] = None
    landmark: Optional[str] = None
    postal_code: str
    country: str = Field(default="IN",nullable=False)
    phone: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))

    __table_args__ = (
        Index("ix_shipping_address_user_address", "user_id", "address_id"),
    )


# ------------------------------------------------------------------------------------- catalog

class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False)
    )
    name: str = Field(sa_column=Column(String(255), nullable=False,unique=True))
    description: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    price: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    stock_qty:int=Field(default=0, sa_column=Column(Integer(), nullable=False))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True)))


# ------------------------------------------------------------------------------------- cart

class CartItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True))
    product_id: int = Field(sa_column=Column(ForeignKey("product.id", ondelete="CASCADE"), nullable=False))
    quantity: int = Field(default=1)
    price: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    subtotal: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_user_product"),
    )


# ------------------------------------------------------------------------------------- coupons

class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(sa_column=Column(String(20), unique=True, index=True, nullable=False))
    discount_percentage: Decimal = Field(sa_column=Column(Numeric(5, 2), nullable=False))
    min_order_amount: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    is_deleted: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


# ------------------------------------------------------------------------------------- checkout

class CheckoutSession(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(default_factory=uuid7, sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False))
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False))
    total_amount: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    discount_amount: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    final_amount: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    item_count: int = Field(default=0, sa_column=Column(Integer, nullable=False))
    coupon_code: Optional[str] = Field(default=None, sa_column=Column(String(20), nullable=True))
    coupon_applied: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    shipping_address_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("shippingaddress.id", ondelete="SET NULL"), nullable=True))
    status: str = Field(default=CheckoutStatus.PENDING.value, sa_column=Column(String(16), nullable=False))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    __table_args__ = (
        Index(
            "uq_checkout_pending_user",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )


# priced copy of the cart lines the session was last refreshed from
class CheckoutItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    checkout_id: int = Field(sa_column=Column(Integer, ForeignKey("checkoutsession.id", ondelete="CASCADE"), nullable=False, index=True))
    product_id: int = Field(sa_column=Column(Integer, ForeignKey("product.id", ondelete="RESTRICT"), nullable=False))
    quantity: int = Field(sa_column=Column(Integer, nullable=False))
    price: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    subtotal: Decimal = Field(sa_column=Column(MONEY, nullable=False))

    __table_args__ = (
        UniqueConstraint("checkout_id", "product_id", name="uq_checkout_item_product"),
    )


# ------------------------------------------------------------------------------------- orders

# User --> Orders (1:many)
class Orders(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(default_factory=uuid7, sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False))
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True))
    checkout_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("checkoutsession.id", ondelete="SET NULL"), nullable=True))
    total_amount: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    discount_amount: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    final_amount: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    order_status: str = Field(default=OrderStatus.PENDING_PAYMENT.value, sa_column=Column(String(32), nullable=False, index=True))
    delivery_status: str = Field(default=DeliveryStatus.PENDING.value, sa_column=Column(String(32), nullable=False))
    refund_status: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    payment_method: str = Field(sa_column=Column(String(16), nullable=False))
    shipping_address_id: int = Field(sa_column=Column(Integer, ForeignKey("shippingaddress.id", ondelete="RESTRICT"), nullable=False))
    coupon_applied: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    coupon_code: Optional[str] = Field(default=None, sa_column=Column(String(20), nullable=True))
    has_return_request: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_cancelled: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    delivered_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


# price is frozen at purchase time
class OrderItem(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True))
    product_id: int = Field(sa_column=Column(Integer, ForeignKey("product.id", ondelete="RESTRICT"), nullable=False))
    quantity: int = Field(sa_column=Column(Integer, nullable=False))
    price: Decimal = Field(sa_column=Column(MONEY, nullable=False))

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_order_product"),
    )


class Payment(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True))
    amount: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    currency: str = Field(default="INR", sa_column=Column(String(8), nullable=False))
    payment_method: str = Field(sa_column=Column(String(16), nullable=False))
    status: str = Field(default=PaymentStatus.PENDING.value, sa_column=Column(String(32), nullable=False, index=True))
    razorpay_order_id: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True, unique=True))
    razorpay_payment_id: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    razorpay_signature: Optional[str] = Field(default=None, sa_column=Column(String(256), nullable=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    paid_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


class CancellationRequest(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True))
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True))
    status: str = Field(default=CancellationStatus.PENDING_REVIEW.value, sa_column=Column(String(32), nullable=False, index=True))
    previous_status: str = Field(sa_column=Column(String(32), nullable=False))
    is_stock_updated: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    decided_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


# ------------------------------------------------------------------------------------- returns

class ReturnRequest(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True))
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True))
    reason: str = Field(sa_column=Column(Text(), nullable=False))
    is_approved: Optional[bool] = Field(default=None, sa_column=Column(Boolean, nullable=True))
    requested_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    approved_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    rejected_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    refund_initiated: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    refund_amount: Optional[Decimal] = Field(default=None, sa_column=Column(MONEY, nullable=True))
    refund_completed: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_order_reached_seller: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    order_returned_to_seller_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    is_stock_updated: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))


# ------------------------------------------------------------------------------------- wallet

class Wallet(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True))
    balance: Decimal = Field(default=ZERO, sa_column=Column(MONEY, nullable=False))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))


# append only, balance_after is the wallet balance right after this row was written
class WalletTransaction(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_id: int = Field(sa_column=Column(Integer, ForeignKey("wallet.id", ondelete="CASCADE"), nullable=False, index=True))
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True))
    amount: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    transaction_type: str = Field(sa_column=Column(String(32), nullable=False, index=True))
    reference_id: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    reference_type: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    balance_after: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
