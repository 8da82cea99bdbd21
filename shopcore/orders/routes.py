import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from shopcore.auth.dependencies import current_user_id, require_admin
from shopcore.common.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from shopcore.common.utils import success_response
from shopcore.db.dependencies import get_session
from shopcore.orders.models import OrderStatusUpdateIn
from shopcore.orders.services import (admin_cancel_order, approve_cancellation, cancel_order,
                                      get_cancellation_requests, get_order_details, get_orders,
                                      place_order_cod, place_order_razorpay, reject_cancellation,
                                      update_order_status)
from shopcore.payments.gateway import RazorpayGateway, get_gateway

orders_router=APIRouter()
orders_admin_router=APIRouter(dependencies=[Depends(require_admin)])


@orders_router.post("/checkout/{checkout_id}/place-order/cod")
async def place_cod_order(checkout_id: uuid.UUID, user_id: int = Depends(current_user_id),
                          session: AsyncSession = Depends(get_session)):
    data = await place_order_cod(session, user_id, checkout_id)
    return success_response(data, status.HTTP_201_CREATED)


@orders_router.post("/checkout/{checkout_id}/place-order/razorpay")
async def place_razorpay_order(checkout_id: uuid.UUID, user_id: int = Depends(current_user_id),
                               session: AsyncSession = Depends(get_session),
                               gateway: RazorpayGateway = Depends(get_gateway)):
    data = await place_order_razorpay(session, user_id, checkout_id, gateway)
    return success_response(data, status.HTTP_201_CREATED)


@orders_router.get("/orders")
async def my_orders(page: int = Query(DEFAULT_PAGE, ge=1),
                    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                    order_status: Optional[str] = Query(None, alias="status"),
                    user_id: int = Depends(current_user_id),
                    session: AsyncSession = Depends(get_session)):
    return success_response(await get_orders(session, page, limit, user_id=user_id, status=order_status))


@orders_router.get("/orders/{order_id}")
async def order_details(order_id: uuid.UUID, user_id: int = Depends(current_user_id),
                        session: AsyncSession = Depends(get_session)):
    return success_response(await get_order_details(session, user_id, order_id))


@orders_router.post("/orders/{order_id}/cancel")
async def request_cancellation(order_id: uuid.UUID, user_id: int = Depends(current_user_id),
                               session: AsyncSession = Depends(get_session)):
    data = await cancel_order(session, user_id, order_id)
    code = status.HTTP_202_ACCEPTED if data["requires_admin_review"] else status.HTTP_200_OK
    return success_response(data, code)


# ------------------------------------------------------------------ admin

@orders_admin_router.get("")
async def all_orders(page: int = Query(DEFAULT_PAGE, ge=1),
                     limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                     order_status: Optional[str] = Query(None, alias="status"),
                     session: AsyncSession = Depends(get_session)):
    return success_response(await get_orders(session, page, limit, status=order_status))


@orders_admin_router.get("/cancellation-requests")
async def cancellation_requests(page: int = Query(DEFAULT_PAGE, ge=1),
                                limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                                request_status: Optional[str] = Query(None, alias="status"),
                                session: AsyncSession = Depends(get_session)):
    return success_response(await get_cancellation_requests(session, page, limit, request_status))


@orders_admin_router.patch("/{order_id}/status")
async def change_status(order_id: uuid.UUID, payload: OrderStatusUpdateIn,
                        session: AsyncSession = Depends(get_session)):
    return success_response(await update_order_status(session, order_id, payload.status))


@orders_admin_router.post("/{order_id}/cancellation/approve")
async def approve(order_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    return success_response(await approve_cancellation(session, order_id))


@orders_admin_router.post("/{order_id}/cancellation/reject")
async def reject(order_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    return success_response(await reject_cancellation(session, order_id))


@orders_admin_router.post("/{order_id}/cancel")
async def cancel_directly(order_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    return success_response(await admin_cancel_order(session, order_id))
