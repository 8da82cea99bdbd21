"""Typed business errors.

Every area owns a closed enum of codes and one exception class carrying a
member of that enum. Each code maps to exactly one ``ErrorCategory`` so the
HTTP layer can pick a status without knowing individual codes.
"""
import enum
from typing import Any, Dict, Mapping, Optional


class ErrorCategory(str, enum.Enum):
    NOT_FOUND = "not_found"
    AUTHORIZATION = "authorization"
    STATE_CONFLICT = "state_conflict"
    VALIDATION = "validation"
    RESOURCE_EXHAUSTION = "resource_exhaustion"
    EXTERNAL_DEPENDENCY = "external_dependency"


class DomainError(Exception):
    categories: Mapping[enum.Enum, ErrorCategory] = {}

    def __init__(self, code: enum.Enum, message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        if code not in self.categories:
            raise TypeError(f"{type(self).__name__} does not own code {code!r}")
        self.code = code
        self.message = message or code.value.replace("_", " ").lower()
        self.details = details or {}
        super().__init__(self.message)

    @property
    def category(self) -> ErrorCategory:
        return self.categories[self.code]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value})"


NF = ErrorCategory.NOT_FOUND
AUTH = ErrorCategory.AUTHORIZATION
STATE = ErrorCategory.STATE_CONFLICT
INVALID = ErrorCategory.VALIDATION
EXHAUSTED = ErrorCategory.RESOURCE_EXHAUSTION
EXTERNAL = ErrorCategory.EXTERNAL_DEPENDENCY


# ---------------------------------------------------------------------------- cart

class CartErrorCode(str, enum.Enum):
    CART_ITEM_NOT_FOUND = "CART_ITEM_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    EXCEEDS_MAX_QUANTITY = "EXCEEDS_MAX_QUANTITY"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


class CartError(DomainError):
    categories = {
        CartErrorCode.CART_ITEM_NOT_FOUND: NF,
        CartErrorCode.PRODUCT_NOT_FOUND: NF,
        CartErrorCode.UNAUTHORIZED: AUTH,
        CartErrorCode.INVALID_QUANTITY: INVALID,
        CartErrorCode.EXCEEDS_MAX_QUANTITY: INVALID,
        CartErrorCode.INSUFFICIENT_STOCK: EXHAUSTED,
    }


# ----------------------------------------------------------------------- inventory

class InventoryErrorCode(str, enum.Enum):
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


class InventoryError(DomainError):
    categories = {
        InventoryErrorCode.PRODUCT_NOT_FOUND: NF,
        InventoryErrorCode.INSUFFICIENT_STOCK: EXHAUSTED,
    }


# ------------------------------------------------------------------------ checkout

class CheckoutErrorCode(str, enum.Enum):
    CHECKOUT_NOT_FOUND = "CHECKOUT_NOT_FOUND"
    ADDRESS_NOT_FOUND = "ADDRESS_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    ADDRESS_NOT_BELONG_TO_USER = "ADDRESS_NOT_BELONG_TO_USER"
    INVALID_CHECKOUT_STATE = "INVALID_CHECKOUT_STATE"
    CHECKOUT_COMPLETED = "CHECKOUT_COMPLETED"
    CART_UPDATED_AFTER_CREATING_CHECKOUT_SESSION = "CART_UPDATED_AFTER_CREATING_CHECKOUT_SESSION"
    EMPTY_CART = "EMPTY_CART"
    EMPTY_CHECKOUT = "EMPTY_CHECKOUT"
    CHECKOUT_CREATE_CONFLICT = "CHECKOUT_CREATE_CONFLICT"


class CheckoutError(DomainError):
    categories = {
        CheckoutErrorCode.CHECKOUT_NOT_FOUND: NF,
        CheckoutErrorCode.ADDRESS_NOT_FOUND: NF,
        CheckoutErrorCode.UNAUTHORIZED: AUTH,
        CheckoutErrorCode.ADDRESS_NOT_BELONG_TO_USER: AUTH,
        CheckoutErrorCode.INVALID_CHECKOUT_STATE: STATE,
        CheckoutErrorCode.CHECKOUT_COMPLETED: STATE,
        CheckoutErrorCode.CART_UPDATED_AFTER_CREATING_CHECKOUT_SESSION: STATE,
        CheckoutErrorCode.EMPTY_CART: INVALID,
        CheckoutErrorCode.EMPTY_CHECKOUT: INVALID,
        CheckoutErrorCode.CHECKOUT_CREATE_CONFLICT: STATE,
    }


# ------------------------------------------------------------------------- coupons

class CouponErrorCode(str, enum.Enum):
    COUPON_NOT_FOUND = "COUPON_NOT_FOUND"
    INVALID_COUPON_CODE = "INVALID_COUPON_CODE"
    COUPON_INACTIVE = "COUPON_INACTIVE"
    COUPON_EXPIRED = "COUPON_EXPIRED"
    COUPON_ALREADY_APPLIED = "COUPON_ALREADY_APPLIED"
    NO_COUPON_APPLIED = "NO_COUPON_APPLIED"
    ORDER_TOTAL_BELOW_MINIMUM = "ORDER_TOTAL_BELOW_MINIMUM"
    INVALID_DISCOUNT_PERCENTAGE = "INVALID_DISCOUNT_PERCENTAGE"
    INVALID_MIN_ORDER_AMOUNT = "INVALID_MIN_ORDER_AMOUNT"
    INVALID_EXPIRY_DATE = "INVALID_EXPIRY_DATE"
    DUPLICATE_COUPON_CODE = "DUPLICATE_COUPON_CODE"
    COUPON_ALREADY_DELETED = "COUPON_ALREADY_DELETED"
    COUPON_IN_USE = "COUPON_IN_USE"


class CouponError(DomainError):
    categories = {
        CouponErrorCode.COUPON_NOT_FOUND: NF,
        CouponErrorCode.INVALID_COUPON_CODE: NF,
        CouponErrorCode.COUPON_INACTIVE: INVALID,
        CouponErrorCode.COUPON_EXPIRED: INVALID,
        CouponErrorCode.COUPON_ALREADY_APPLIED: STATE,
        CouponErrorCode.NO_COUPON_APPLIED: STATE,
        CouponErrorCode.ORDER_TOTAL_BELOW_MINIMUM: INVALID,
        CouponErrorCode.INVALID_DISCOUNT_PERCENTAGE: INVALID,
        CouponErrorCode.INVALID_MIN_ORDER_AMOUNT: INVALID,
        CouponErrorCode.INVALID_EXPIRY_DATE: INVALID,
        CouponErrorCode.DUPLICATE_COUPON_CODE: STATE,
        CouponErrorCode.COUPON_ALREADY_DELETED: STATE,
        CouponErrorCode.COUPON_IN_USE: STATE,
    }


# -------------------------------------------------------------------------- orders

class OrderErrorCode(str, enum.Enum):
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    ORDER_ALREADY_PLACED = "ORDER_ALREADY_PLACED"
    ORDER_ALREADY_CANCELLED = "ORDER_ALREADY_CANCELLED"
    ORDER_ALREADY_DELIVERED = "ORDER_ALREADY_DELIVERED"
    ORDER_NOT_CANCELLABLE = "ORDER_NOT_CANCELLABLE"
    ORDER_NOT_PENDING_CANCELLATION = "ORDER_NOT_PENDING_CANCELLATION"
    CANCELLATION_ALREADY_REQUESTED = "CANCELLATION_ALREADY_REQUESTED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_ORDER_STATUS = "INVALID_ORDER_STATUS"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    EMPTY_CART = "EMPTY_CART"
    COD_LIMIT_EXCEEDED = "COD_LIMIT_EXCEEDED"


class OrderError(DomainError):
    categories = {
        OrderErrorCode.ORDER_NOT_FOUND: NF,
        OrderErrorCode.UNAUTHORIZED: AUTH,
        OrderErrorCode.ORDER_ALREADY_PLACED: STATE,
        OrderErrorCode.ORDER_ALREADY_CANCELLED: STATE,
        OrderErrorCode.ORDER_ALREADY_DELIVERED: STATE,
        OrderErrorCode.ORDER_NOT_CANCELLABLE: STATE,
        OrderErrorCode.ORDER_NOT_PENDING_CANCELLATION: STATE,
        OrderErrorCode.CANCELLATION_ALREADY_REQUESTED: STATE,
        OrderErrorCode.INVALID_STATUS_TRANSITION: STATE,
        OrderErrorCode.INVALID_ORDER_STATUS: INVALID,
        OrderErrorCode.INVALID_ADDRESS: INVALID,
        OrderErrorCode.EMPTY_CART: INVALID,
        OrderErrorCode.COD_LIMIT_EXCEEDED: EXHAUSTED,
    }


# ------------------------------------------------------------------------ payments

class PaymentErrorCode(str, enum.Enum):
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    PAYMENT_ALREADY_PROCESSED = "PAYMENT_ALREADY_PROCESSED"
    ORDER_NOT_AWAITING_PAYMENT = "ORDER_NOT_AWAITING_PAYMENT"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    GATEWAY_ORDER_FAILED = "GATEWAY_ORDER_FAILED"


class PaymentError(DomainError):
    categories = {
        PaymentErrorCode.PAYMENT_NOT_FOUND: NF,
        PaymentErrorCode.UNAUTHORIZED: AUTH,
        PaymentErrorCode.PAYMENT_ALREADY_PROCESSED: STATE,
        PaymentErrorCode.ORDER_NOT_AWAITING_PAYMENT: STATE,
        PaymentErrorCode.INVALID_SIGNATURE: EXTERNAL,
        PaymentErrorCode.GATEWAY_ORDER_FAILED: EXTERNAL,
    }


# ------------------------------------------------------------------------- returns

class ReturnErrorCode(str, enum.Enum):
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    RETURN_REQUEST_NOT_FOUND = "RETURN_REQUEST_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    ORDER_NOT_ELIGIBLE_FOR_RETURN = "ORDER_NOT_ELIGIBLE_FOR_RETURN"
    RETURN_WINDOW_EXPIRED = "RETURN_WINDOW_EXPIRED"
    RETURN_ALREADY_REQUESTED = "RETURN_ALREADY_REQUESTED"
    RETURN_REQUEST_ALREADY_PROCESSED = "RETURN_REQUEST_ALREADY_PROCESSED"
    RETURN_REQUEST_NOT_APPROVED = "RETURN_REQUEST_NOT_APPROVED"
    REFUND_ALREADY_INITIATED = "REFUND_ALREADY_INITIATED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ALREADY_MARKED_AS_RETURNED = "ALREADY_MARKED_AS_RETURNED"
    INVALID_RETURN_REASON = "INVALID_RETURN_REASON"


class ReturnError(DomainError):
    categories = {
        ReturnErrorCode.ORDER_NOT_FOUND: NF,
        ReturnErrorCode.RETURN_REQUEST_NOT_FOUND: NF,
        ReturnErrorCode.UNAUTHORIZED: AUTH,
        ReturnErrorCode.ORDER_NOT_ELIGIBLE_FOR_RETURN: STATE,
        ReturnErrorCode.RETURN_WINDOW_EXPIRED: STATE,
        ReturnErrorCode.RETURN_ALREADY_REQUESTED: STATE,
        ReturnErrorCode.RETURN_REQUEST_ALREADY_PROCESSED: STATE,
        ReturnErrorCode.RETURN_REQUEST_NOT_APPROVED: STATE,
        ReturnErrorCode.REFUND_ALREADY_INITIATED: STATE,
        ReturnErrorCode.ORDER_CANCELLED: STATE,
        ReturnErrorCode.ALREADY_MARKED_AS_RETURNED: STATE,
        ReturnErrorCode.INVALID_RETURN_REASON: INVALID,
    }


# -------------------------------------------------------------------------- wallet

class WalletErrorCode(str, enum.Enum):
    WALLET_NOT_INITIALIZED = "WALLET_NOT_INITIALIZED"
    INVALID_AMOUNT = "INVALID_AMOUNT"


class WalletError(DomainError):
    categories = {
        WalletErrorCode.WALLET_NOT_INITIALIZED: NF,
        WalletErrorCode.INVALID_AMOUNT: INVALID,
    }
