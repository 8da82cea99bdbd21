import uuid
from datetime import timedelta
from typing import Any, Dict, Optional
from shopcore.common.errors import ReturnError, ReturnErrorCode
from shopcore.common.utils import as_utc, now, page_offset, to_money
from shopcore.config.settings import config_settings
from shopcore.db.utils import unit_of_work
from shopcore.inventory.repository import restore_items_stock
from shopcore.orders.repository import get_order, get_order_by_public_id, get_payment_for_order, load_order_items
from shopcore.orders.state_machine import ensure_transition
from shopcore.returns.constants import logger
from shopcore.returns.repository import get_return_for_order, get_return_request, list_returns
from shopcore.schema.full_schema import (OrderStatus, PaymentStatus, RefundStatus, ReturnRequest,
                                         WalletReferenceType)
from shopcore.wallet.services import credit_wallet


def serialize_return(req: ReturnRequest, order_public_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    return {
        "id": req.id,
        "order_id": str(order_public_id) if order_public_id else None,
        "reason": req.reason,
        "is_approved": req.is_approved,
        "requested_at": req.requested_at,
        "approved_at": req.approved_at,
        "rejected_at": req.rejected_at,
        "refund_initiated": req.refund_initiated,
        "refund_amount": to_money(req.refund_amount) if req.refund_amount is not None else None,
        "refund_completed": req.refund_completed,
        "is_order_reached_seller": req.is_order_reached_seller,
        "order_returned_to_seller_at": req.order_returned_to_seller_at,
    }


async def _owned_order(session, user_id: int, order_id: uuid.UUID, lock: bool = False):
    order = await get_order_by_public_id(session, order_id, lock=lock)
    if order is None:
        raise ReturnError(ReturnErrorCode.ORDER_NOT_FOUND)
    if order.user_id != user_id:
        raise ReturnError(ReturnErrorCode.UNAUTHORIZED)
    return order


async def _load_request(session, return_id: int) -> ReturnRequest:
    req = await get_return_request(session, return_id, lock=True)
    if req is None:
        raise ReturnError(ReturnErrorCode.RETURN_REQUEST_NOT_FOUND)
    return req


async def initiate_return(session, user_id: int, order_id: uuid.UUID, reason: str) -> Dict[str, Any]:
    async with unit_of_work(session):
        order = await _owned_order(session, user_id, order_id, lock=True)

        delivered_at = as_utc(order.delivered_at)
        if order.order_status != OrderStatus.DELIVERED.value or delivered_at is None:
            raise ReturnError(ReturnErrorCode.ORDER_NOT_ELIGIBLE_FOR_RETURN,
                              details={"order_status": order.order_status})

        window_ends = delivered_at + timedelta(days=config_settings.RETURN_WINDOW_DAYS)
        if now() >= window_ends:
            raise ReturnError(ReturnErrorCode.RETURN_WINDOW_EXPIRED, details={"window_ended_at": window_ends})

        if order.has_return_request:
            raise ReturnError(ReturnErrorCode.RETURN_ALREADY_REQUESTED)

        reason = (reason or "").strip()
        if not reason:
            raise ReturnError(ReturnErrorCode.INVALID_RETURN_REASON)

        ensure_transition(order.order_status, OrderStatus.RETURN_REQUESTED)
        req = ReturnRequest(order_id=order.id, user_id=user_id, reason=reason, requested_at=now())
        session.add(req)
        order.has_return_request = True
        order.order_status = OrderStatus.RETURN_REQUESTED.value
        order.updated_at = now()
        await session.flush()
        data = serialize_return(req, order.public_id)

    logger.info("return.requested", extra={"order_public_id": data["order_id"], "return_id": data["id"]})
    return data


async def update_return_request(session, return_id: int, approve: bool) -> Dict[str, Any]:
    async with unit_of_work(session):
        req = await _load_request(session, return_id)
        if req.approved_at is not None or req.rejected_at is not None:
            raise ReturnError(ReturnErrorCode.RETURN_REQUEST_ALREADY_PROCESSED)

        order = await get_order(session, req.order_id, lock=True)
        target = OrderStatus.RETURN_APPROVED if approve else OrderStatus.DELIVERED
        ensure_transition(order.order_status, target)

        ts = now()
        req.is_approved = approve
        if approve:
            req.approved_at = ts
        else:
            req.rejected_at = ts
        order.order_status = target.value
        order.updated_at = ts
        await session.flush()
        data = serialize_return(req, order.public_id)

    logger.info("return.decided", extra={"return_id": return_id, "approved": approve})
    return data


async def initiate_refund(session, return_id: int) -> Dict[str, Any]:
    """Credit the order amount to the user's wallet and close the order as refunded."""
    async with unit_of_work(session):
        req = await _load_request(session, return_id)
        if not req.is_approved:
            raise ReturnError(ReturnErrorCode.RETURN_REQUEST_NOT_APPROVED)
        if req.refund_initiated:
            raise ReturnError(ReturnErrorCode.REFUND_ALREADY_INITIATED)

        order = await get_order(session, req.order_id, lock=True)
        if order.is_cancelled or order.order_status == OrderStatus.CANCELLED.value:
            raise ReturnError(ReturnErrorCode.ORDER_CANCELLED)
        ensure_transition(order.order_status, OrderStatus.REFUNDED)

        amount = to_money(order.final_amount)
        txn = await credit_wallet(session, order.user_id, amount, req.id, WalletReferenceType.RETURN,
                                  description=f"Refund for returned order {order.public_id}")

        ts = now()
        req.refund_initiated = True
        req.refund_amount = amount
        req.refund_completed = True

        payment = await get_payment_for_order(session, order.id, lock=True)
        if payment is not None and payment.status == PaymentStatus.PAID.value:
            payment.status = PaymentStatus.REFUNDED.value
            payment.updated_at = ts

        order.order_status = OrderStatus.REFUNDED.value
        order.refund_status = RefundStatus.COMPLETED.value
        order.updated_at = ts
        await session.flush()

        data = {
            "return_id": req.id,
            "order_id": str(order.public_id),
            "refund_amount": amount,
            "refund_status": order.refund_status,
            "transaction_id": txn.id,
            "balance_after": to_money(txn.balance_after),
            "refunded_at": ts,
        }

    logger.info("return.refund.completed", extra={
        "return_id": return_id,
        "order_public_id": data["order_id"],
        "amount": str(amount),
    })
    return data


async def mark_order_returned_to_seller(session, return_id: int) -> Dict[str, Any]:
    async with unit_of_work(session):
        req = await _load_request(session, return_id)
        if not req.is_approved:
            raise ReturnError(ReturnErrorCode.RETURN_REQUEST_NOT_APPROVED)
        if req.is_order_reached_seller:
            raise ReturnError(ReturnErrorCode.ALREADY_MARKED_AS_RETURNED)

        if not req.is_stock_updated:
            await restore_items_stock(session, await load_order_items(session, req.order_id))
            req.is_stock_updated = True
        req.is_order_reached_seller = True
        req.order_returned_to_seller_at = now()
        await session.flush()

        order = await get_order(session, req.order_id)
        data = serialize_return(req, order.public_id if order else None)

    logger.info("return.received_by_seller", extra={"return_id": return_id})
    return data


async def get_return_for_user_order(session, user_id: int, order_id: uuid.UUID) -> Dict[str, Any]:
    order = await _owned_order(session, user_id, order_id)
    req = await get_return_for_order(session, order.id)
    if req is None:
        raise ReturnError(ReturnErrorCode.RETURN_REQUEST_NOT_FOUND)
    return serialize_return(req, order.public_id)


async def get_returns(session, page: int, limit: int, user_id: Optional[int] = None,
                      pending_only: bool = False) -> Dict[str, Any]:
    rows, total = await list_returns(session, page_offset(page, limit), limit, user_id, pending_only)
    return {
        "returns": [serialize_return(req, public_id) for req, public_id in rows],
        "page": page,
        "limit": limit,
        "total": total,
    }
