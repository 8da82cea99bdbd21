import uuid
from typing import Any, Dict, Optional
from shopcore.common.errors import OrderError, OrderErrorCode, PaymentError, PaymentErrorCode
from shopcore.common.utils import now, to_money
from shopcore.db.utils import unit_of_work
from shopcore.orders.repository import get_order, get_order_by_public_id
from shopcore.orders.repository import get_payment_for_order as find_order_payment
from shopcore.orders.state_machine import ensure_transition
from shopcore.payments.constants import logger
from shopcore.payments.gateway import RazorpayGateway
from shopcore.payments.repository import get_payment_by_remote_order
from shopcore.schema.full_schema import OrderStatus, Payment, PaymentStatus


def serialize_payment(payment: Payment, order_public_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    return {
        "order_id": str(order_public_id) if order_public_id else None,
        "amount": to_money(payment.amount),
        "currency": payment.currency,
        "payment_method": payment.payment_method,
        "status": payment.status,
        "razorpay_order_id": payment.razorpay_order_id,
        "razorpay_payment_id": payment.razorpay_payment_id,
        "paid_at": payment.paid_at,
    }


async def verify_and_update_razorpay_payment(session, gateway: RazorpayGateway, razorpay_order_id: str,
                                             razorpay_payment_id: str, signature: str,
                                             user_id: Optional[int] = None) -> Dict[str, Any]:
    """Settle a gateway payment from the client callback.

    The signature is checked before anything is written, so a forged callback
    leaves both the payment and the order untouched.
    """
    async with unit_of_work(session):
        payment = await get_payment_by_remote_order(session, razorpay_order_id, lock=True)
        if payment is None:
            raise PaymentError(PaymentErrorCode.PAYMENT_NOT_FOUND)

        order = await get_order(session, payment.order_id, lock=True)
        if user_id is not None and order.user_id != user_id:
            raise PaymentError(PaymentErrorCode.UNAUTHORIZED)

        gateway.verify_signature(razorpay_order_id, razorpay_payment_id, signature)

        if payment.status in (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value):
            raise PaymentError(PaymentErrorCode.PAYMENT_ALREADY_PROCESSED)
        if order.order_status != OrderStatus.PENDING_PAYMENT.value:
            raise PaymentError(PaymentErrorCode.ORDER_NOT_AWAITING_PAYMENT,
                               details={"order_status": order.order_status})

        ensure_transition(order.order_status, OrderStatus.CONFIRMED)
        ts = now()
        payment.status = PaymentStatus.PAID.value
        payment.razorpay_payment_id = razorpay_payment_id
        payment.razorpay_signature = signature
        payment.paid_at = ts
        payment.updated_at = ts
        order.order_status = OrderStatus.CONFIRMED.value
        order.updated_at = ts
        await session.flush()

        result = serialize_payment(payment, order.public_id)
        result["order_status"] = order.order_status

    logger.info("payment.razorpay.verified", extra={
        "razorpay_order_id": razorpay_order_id,
        "order_public_id": result["order_id"],
    })
    return result


async def get_payment_for_order(session, user_id: int, order_id: uuid.UUID) -> Dict[str, Any]:
    order = await get_order_by_public_id(session, order_id)
    if order is None:
        raise OrderError(OrderErrorCode.ORDER_NOT_FOUND)
    if order.user_id != user_id:
        raise PaymentError(PaymentErrorCode.UNAUTHORIZED)

    payment = await find_order_payment(session, order.id)
    if payment is None:
        raise PaymentError(PaymentErrorCode.PAYMENT_NOT_FOUND)
    return serialize_payment(payment, order.public_id)
