import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from shopcore.cart.repository import clear_cart, get_cart_lines
from shopcore.checkout.repository import get_checkout_by_public_id, get_checkout_items
from shopcore.checkout.services import snapshot_differs
from shopcore.common.errors import CheckoutError, CheckoutErrorCode, OrderError, OrderErrorCode
from shopcore.common.utils import now, page_offset, to_minor_units, to_money
from shopcore.config.settings import config_settings
from shopcore.db.utils import unit_of_work
from shopcore.inventory.repository import decrement_stock, restore_items_stock, validate_stock
from shopcore.orders.constants import logger
from shopcore.orders.repository import (get_cancellation_request, get_order_by_public_id, get_payment_for_order,
                                        insert_order_items, list_cancellation_requests, list_orders,
                                        load_order_items)
from shopcore.orders.state_machine import ADMIN_SETTABLE, CANCELLABLE, ensure_transition, parse_status
from shopcore.payments.gateway import RazorpayGateway
from shopcore.schema.full_schema import (CancellationRequest, CancellationStatus, CheckoutSession, CheckoutStatus,
                                         DeliveryStatus, Orders, OrderStatus, Payment, PaymentMethod,
                                         PaymentStatus, RefundStatus, WalletReferenceType)
from shopcore.wallet.services import credit_wallet


# ------------------------------------------------------------------------------------------ placement

async def _prepare_placement(session, user_id: int, checkout_id: uuid.UUID) -> Tuple[CheckoutSession, List[Dict[str, Any]]]:
    cs = await get_checkout_by_public_id(session, checkout_id, lock=True)
    if cs is None:
        raise CheckoutError(CheckoutErrorCode.CHECKOUT_NOT_FOUND)
    if cs.user_id != user_id:
        raise OrderError(OrderErrorCode.UNAUTHORIZED)
    if cs.status != CheckoutStatus.PENDING.value:
        raise OrderError(OrderErrorCode.ORDER_ALREADY_PLACED)

    items = await get_checkout_items(session, cs.id)
    if not items:
        raise OrderError(OrderErrorCode.EMPTY_CART)

    # a cart edited after the last refresh must not be ordered at the old snapshot
    if snapshot_differs(items, await get_cart_lines(session, user_id)):
        raise CheckoutError(CheckoutErrorCode.CART_UPDATED_AFTER_CREATING_CHECKOUT_SESSION)

    await validate_stock(session, items, lock=True)

    if cs.shipping_address_id is None:
        raise OrderError(OrderErrorCode.INVALID_ADDRESS)

    return cs, items


async def _insert_order(session, cs: CheckoutSession, method: PaymentMethod) -> Orders:
    order = Orders(
        user_id=cs.user_id,
        checkout_id=cs.id,
        total_amount=to_money(cs.total_amount),
        discount_amount=to_money(cs.discount_amount),
        final_amount=to_money(cs.final_amount),
        order_status=OrderStatus.PENDING_PAYMENT.value,
        delivery_status=DeliveryStatus.PENDING.value,
        payment_method=method.value,
        shipping_address_id=cs.shipping_address_id,
        coupon_applied=cs.coupon_applied,
        coupon_code=cs.coupon_code,
    )
    session.add(order)
    await session.flush()
    return order


async def _finish_placement(session, cs: CheckoutSession, order: Orders, items: List[Dict[str, Any]]) -> None:
    await insert_order_items(session, order.id, items)
    for it in items:
        await decrement_stock(session, it["product_id"], it["quantity"])
    cs.status = CheckoutStatus.COMPLETED.value
    cs.updated_at = now()
    await clear_cart(session, cs.user_id)
    await session.flush()


def _placement_result(order: Orders, payment: Payment, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "order_id": str(order.public_id),
        "order_status": order.order_status,
        "payment_method": payment.payment_method,
        "payment_status": payment.status,
        "total_amount": to_money(order.total_amount),
        "discount_amount": to_money(order.discount_amount),
        "final_amount": to_money(order.final_amount),
        "items": items,
    }


async def place_order_cod(session, user_id: int, checkout_id: uuid.UUID) -> Dict[str, Any]:
    async with unit_of_work(session):
        cs, items = await _prepare_placement(session, user_id, checkout_id)

        if to_money(cs.final_amount) > to_money(config_settings.COD_LIMIT):
            raise OrderError(
                OrderErrorCode.COD_LIMIT_EXCEEDED,
                details={"cod_limit": str(to_money(config_settings.COD_LIMIT))},
            )

        order = await _insert_order(session, cs, PaymentMethod.COD)
        payment = Payment(
            order_id=order.id,
            amount=order.final_amount,
            currency=config_settings.CURRENCY,
            payment_method=PaymentMethod.COD.value,
            status=PaymentStatus.PENDING.value,
        )
        session.add(payment)
        await session.flush()

        await _finish_placement(session, cs, order, items)
        result = _placement_result(order, payment, items)

    logger.info("order.place.cod.success", extra={
        "order_public_id": result["order_id"],
        "user_id": user_id,
        "final_amount": str(result["final_amount"]),
    })
    return result


async def place_order_razorpay(session, user_id: int, checkout_id: uuid.UUID,
                               gateway: RazorpayGateway) -> Dict[str, Any]:
    async with unit_of_work(session):
        cs, items = await _prepare_placement(session, user_id, checkout_id)

        order = await _insert_order(session, cs, PaymentMethod.RAZORPAY)
        amount_minor = to_minor_units(order.final_amount)
        remote_order_id = await gateway.create_remote_order(
            amount_minor,
            config_settings.CURRENCY,
            receipt=f"order_{order.public_id.hex[:20]}",
            notes={"order_public_id": str(order.public_id)},
        )
        payment = Payment(
            order_id=order.id,
            amount=order.final_amount,
            currency=config_settings.CURRENCY,
            payment_method=PaymentMethod.RAZORPAY.value,
            status=PaymentStatus.AWAITING_PAYMENT.value,
            razorpay_order_id=remote_order_id,
        )
        session.add(payment)
        await session.flush()

        await _finish_placement(session, cs, order, items)
        result = _placement_result(order, payment, items)

    result["razorpay"] = {
        "key_id": gateway.key_id,
        "razorpay_order_id": remote_order_id,
        "amount": amount_minor,
        "currency": config_settings.CURRENCY,
    }
    logger.info("order.place.razorpay.success", extra={
        "order_public_id": result["order_id"],
        "razorpay_order_id": remote_order_id,
        "user_id": user_id,
    })
    return result


# ------------------------------------------------------------------------------------------ reads

def serialize_order(order: Orders, items: Optional[List[Dict[str, Any]]] = None,
                    payment: Optional[Payment] = None) -> Dict[str, Any]:
    data = {
        "order_id": str(order.public_id),
        "order_status": order.order_status,
        "delivery_status": order.delivery_status,
        "refund_status": order.refund_status,
        "payment_method": order.payment_method,
        "total_amount": to_money(order.total_amount),
        "discount_amount": to_money(order.discount_amount),
        "final_amount": to_money(order.final_amount),
        "coupon_applied": order.coupon_applied,
        "coupon_code": order.coupon_code,
        "has_return_request": order.has_return_request,
        "is_cancelled": order.is_cancelled,
        "shipping_address_id": order.shipping_address_id,
        "created_at": order.created_at,
        "delivered_at": order.delivered_at,
    }
    if items is not None:
        data["items"] = items
    if payment is not None:
        data["payment"] = {"status": payment.status, "amount": to_money(payment.amount), "paid_at": payment.paid_at}
    return data


async def load_owned_order(session, user_id: int, order_id: uuid.UUID, lock: bool = False) -> Orders:
    order = await get_order_by_public_id(session, order_id, lock=lock)
    if order is None:
        raise OrderError(OrderErrorCode.ORDER_NOT_FOUND)
    if order.user_id != user_id:
        raise OrderError(OrderErrorCode.UNAUTHORIZED)
    return order


async def _load_order(session, order_id: uuid.UUID, lock: bool = False) -> Orders:
    order = await get_order_by_public_id(session, order_id, lock=lock)
    if order is None:
        raise OrderError(OrderErrorCode.ORDER_NOT_FOUND)
    return order


async def get_order_details(session, user_id: int, order_id: uuid.UUID) -> Dict[str, Any]:
    order = await load_owned_order(session, user_id, order_id)
    items = await load_order_items(session, order.id)
    payment = await get_payment_for_order(session, order.id)
    return serialize_order(order, items, payment)


async def get_orders(session, page: int, limit: int, user_id: Optional[int] = None,
                     status: Optional[str] = None) -> Dict[str, Any]:
    if status:
        status = parse_status(status).value
    orders, total = await list_orders(session, page_offset(page, limit), limit, user_id, status)
    return {
        "orders": [serialize_order(o) for o in orders],
        "page": page,
        "limit": limit,
        "total": total,
    }


async def get_cancellation_requests(session, page: int, limit: int, status: Optional[str] = None) -> Dict[str, Any]:
    rows, total = await list_cancellation_requests(session, page_offset(page, limit), limit, status)
    return {
        "requests": [
            {
                "id": req.id,
                "order_id": str(order_public_id),
                "user_id": req.user_id,
                "status": req.status,
                "previous_status": req.previous_status,
                "created_at": req.created_at,
                "decided_at": req.decided_at,
            }
            for req, order_public_id in rows
        ],
        "page": page,
        "limit": limit,
        "total": total,
    }


# ------------------------------------------------------------------------------------------ cancellation

async def _cancel(session, order: Orders, request: Optional[CancellationRequest]) -> Dict[str, Any]:
    """Move ``order`` to cancelled with its side effects. Caller owns the transaction."""
    ensure_transition(order.order_status, OrderStatus.CANCELLED)

    order.order_status = OrderStatus.CANCELLED.value
    order.delivery_status = DeliveryStatus.CANCELLED.value
    order.is_cancelled = True
    order.updated_at = now()

    stock_restored = False
    if request is None or not request.is_stock_updated:
        await restore_items_stock(session, await load_order_items(session, order.id))
        stock_restored = True
    if request is not None:
        request.is_stock_updated = True
        # a rejected request keeps its decision when an admin cancels directly
        if request.status == CancellationStatus.PENDING_REVIEW.value:
            request.status = CancellationStatus.APPROVED.value
            request.decided_at = now()

    refunded: Optional[Decimal] = None
    payment = await get_payment_for_order(session, order.id, lock=True)
    if (payment is not None and payment.payment_method == PaymentMethod.RAZORPAY.value
            and payment.status == PaymentStatus.PAID.value):
        await credit_wallet(session, order.user_id, order.final_amount, order.id,
                            WalletReferenceType.ORDER_CANCELLATION,
                            description=f"Refund for cancelled order {order.public_id}")
        payment.status = PaymentStatus.REFUNDED.value
        payment.updated_at = now()
        order.refund_status = RefundStatus.COMPLETED.value
        refunded = to_money(order.final_amount)

    await session.flush()
    return {
        "order_id": str(order.public_id),
        "order_status": order.order_status,
        "stock_restored": stock_restored,
        "refunded_amount": refunded,
        "requires_admin_review": False,
    }


async def cancel_order(session, user_id: int, order_id: uuid.UUID) -> Dict[str, Any]:
    """User cancel. Unpaid orders cancel at once, anything further along needs admin review."""
    async with unit_of_work(session):
        order = await load_owned_order(session, user_id, order_id, lock=True)
        current = OrderStatus(order.order_status)

        if current == OrderStatus.CANCELLED:
            raise OrderError(OrderErrorCode.ORDER_ALREADY_CANCELLED)
        if current == OrderStatus.PENDING_CANCELLATION:
            raise OrderError(OrderErrorCode.CANCELLATION_ALREADY_REQUESTED)
        if current not in CANCELLABLE:
            raise OrderError(OrderErrorCode.ORDER_NOT_CANCELLABLE, details={"order_status": current.value})

        if current == OrderStatus.PENDING_PAYMENT:
            result = await _cancel(session, order, None)
        else:
            ensure_transition(current.value, OrderStatus.PENDING_CANCELLATION)
            request = await get_cancellation_request(session, order.id, lock=True)
            if request is None:
                request = CancellationRequest(order_id=order.id, user_id=user_id, previous_status=current.value)
                session.add(request)
            else:
                # a rejected request is reopened rather than duplicated
                request.status = CancellationStatus.PENDING_REVIEW.value
                request.previous_status = current.value
                request.created_at = now()
                request.decided_at = None

            order.order_status = OrderStatus.PENDING_CANCELLATION.value
            order.updated_at = now()
            await session.flush()
            result = {
                "order_id": str(order.public_id),
                "order_status": order.order_status,
                "cancellation_request_id": request.id,
                "cancellation_status": request.status,
                "requires_admin_review": True,
            }

    logger.info("order.cancel.requested", extra={
        "order_public_id": result["order_id"],
        "user_id": user_id,
        "requires_admin_review": result["requires_admin_review"],
    })
    return result


async def approve_cancellation(session, order_id: uuid.UUID) -> Dict[str, Any]:
    async with unit_of_work(session):
        order = await _load_order(session, order_id, lock=True)
        if order.order_status != OrderStatus.PENDING_CANCELLATION.value:
            raise OrderError(OrderErrorCode.ORDER_NOT_PENDING_CANCELLATION)
        request = await get_cancellation_request(session, order.id, lock=True)
        result = await _cancel(session, order, request)

    logger.info("order.cancel.approved", extra={"order_public_id": result["order_id"]})
    return result


async def reject_cancellation(session, order_id: uuid.UUID) -> Dict[str, Any]:
    async with unit_of_work(session):
        order = await _load_order(session, order_id, lock=True)
        if order.order_status != OrderStatus.PENDING_CANCELLATION.value:
            raise OrderError(OrderErrorCode.ORDER_NOT_PENDING_CANCELLATION)
        request = await get_cancellation_request(session, order.id, lock=True)

        restore_to = OrderStatus(request.previous_status) if request is not None else OrderStatus.CONFIRMED
        ensure_transition(order.order_status, restore_to)
        order.order_status = restore_to.value
        order.updated_at = now()
        if request is not None:
            request.status = CancellationStatus.REJECTED.value
            request.decided_at = now()
        await session.flush()
        result = {"order_id": str(order.public_id), "order_status": order.order_status}

    logger.info("order.cancel.rejected", extra={"order_public_id": result["order_id"]})
    return result


async def admin_cancel_order(session, order_id: uuid.UUID) -> Dict[str, Any]:
    async with unit_of_work(session):
        order = await _load_order(session, order_id, lock=True)
        current = OrderStatus(order.order_status)
        if current == OrderStatus.CANCELLED:
            raise OrderError(OrderErrorCode.ORDER_ALREADY_CANCELLED)

        request = await get_cancellation_request(session, order.id, lock=True)
        if current == OrderStatus.PENDING_CANCELLATION or current in CANCELLABLE:
            result = await _cancel(session, order, request)
        else:
            raise OrderError(OrderErrorCode.ORDER_NOT_CANCELLABLE, details={"order_status": current.value})

    logger.info("order.cancel.admin", extra={"order_public_id": result["order_id"]})
    return result


# ------------------------------------------------------------------------------------------ fulfilment

POST_DELIVERY = frozenset({OrderStatus.DELIVERED, OrderStatus.RETURN_REQUESTED,
                           OrderStatus.RETURN_APPROVED, OrderStatus.REFUNDED})


async def update_order_status(session, order_id: uuid.UUID, new_status: str) -> Dict[str, Any]:
    target = parse_status(new_status)
    if target not in ADMIN_SETTABLE:
        raise OrderError(OrderErrorCode.INVALID_ORDER_STATUS, details={"status": target.value})

    async with unit_of_work(session):
        order = await _load_order(session, order_id, lock=True)
        current = OrderStatus(order.order_status)

        if current in POST_DELIVERY:
            raise OrderError(OrderErrorCode.ORDER_ALREADY_DELIVERED)
        if current == OrderStatus.CANCELLED:
            raise OrderError(OrderErrorCode.ORDER_ALREADY_CANCELLED)
        if current == OrderStatus.PENDING_CANCELLATION:
            # settled through approve / reject only
            raise OrderError(OrderErrorCode.INVALID_STATUS_TRANSITION,
                             message="order has a cancellation request awaiting review")
        if current == OrderStatus.PENDING_PAYMENT:
            payment = await get_payment_for_order(session, order.id)
            # gateway orders are confirmed by the verified payment callback only
            if payment is not None and payment.payment_method == PaymentMethod.RAZORPAY.value:
                raise OrderError(OrderErrorCode.INVALID_STATUS_TRANSITION,
                                 message="gateway order is awaiting payment",
                                 details={"from": current.value, "to": target.value})
        ensure_transition(current.value, target)

        order.order_status = target.value
        order.updated_at = now()
        if target == OrderStatus.SHIPPED:
            order.delivery_status = DeliveryStatus.IN_TRANSIT.value
        elif target == OrderStatus.DELIVERED:
            order.delivery_status = DeliveryStatus.DELIVERED.value
            order.delivered_at = now()
            payment = await get_payment_for_order(session, order.id, lock=True)
            # cash is collected at the door
            if payment is not None and payment.payment_method == PaymentMethod.COD.value \
                    and payment.status == PaymentStatus.PENDING.value:
                payment.status = PaymentStatus.PAID.value
                payment.paid_at = order.delivered_at
                payment.updated_at = now()
        await session.flush()
        result = serialize_order(order)

    logger.info("order.status.updated", extra={
        "order_public_id": result["order_id"],
        "from_status": current.value,
        "to_status": target.value,
    })
    return result
