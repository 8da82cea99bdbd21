"""Order lifecycle transitions.

All status changes on an order go through ``ensure_transition`` so an illegal
move fails with a typed error instead of silently overwriting the status.
"""
from typing import Dict, FrozenSet
from shopcore.common.errors import OrderError, OrderErrorCode
from shopcore.schema.full_schema import OrderStatus

S = OrderStatus

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.PENDING_PAYMENT: frozenset({S.CONFIRMED, S.PROCESSING, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.PROCESSING, S.SHIPPED, S.PENDING_CANCELLATION, S.CANCELLED}),
    S.PROCESSING: frozenset({S.SHIPPED, S.DELIVERED, S.PENDING_CANCELLATION, S.CANCELLED}),
    S.SHIPPED: frozenset({S.DELIVERED}),
    # rejection puts the order back where it was
    S.PENDING_CANCELLATION: frozenset({S.CANCELLED, S.CONFIRMED, S.PROCESSING}),
    S.DELIVERED: frozenset({S.RETURN_REQUESTED}),
    S.RETURN_REQUESTED: frozenset({S.RETURN_APPROVED, S.DELIVERED}),
    S.RETURN_APPROVED: frozenset({S.REFUNDED}),
    S.CANCELLED: frozenset(),
    S.REFUNDED: frozenset(),
}

CANCELLABLE = frozenset({S.PENDING_PAYMENT, S.CONFIRMED, S.PROCESSING})

# statuses an admin may set directly through the status update endpoint
ADMIN_SETTABLE = frozenset({S.CONFIRMED, S.PROCESSING, S.SHIPPED, S.DELIVERED})


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise OrderError(OrderErrorCode.INVALID_ORDER_STATUS, details={"status": value})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: str, target: OrderStatus) -> OrderStatus:
    current = OrderStatus(current)

    if current == target == S.CANCELLED:
        raise OrderError(OrderErrorCode.ORDER_ALREADY_CANCELLED)
    if not can_transition(current, target):
        raise OrderError(
            OrderErrorCode.INVALID_STATUS_TRANSITION,
            message=f"cannot move order from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return target
