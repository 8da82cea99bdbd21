import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from shopcore.auth.dependencies import current_user_id, require_admin
from shopcore.common.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from shopcore.common.utils import success_response
from shopcore.db.dependencies import get_session
from shopcore.returns.models import ReturnDecisionIn, ReturnRequestIn
from shopcore.returns.services import (get_return_for_user_order, get_returns, initiate_refund, initiate_return,
                                       mark_order_returned_to_seller, update_return_request)

returns_router=APIRouter()
returns_admin_router=APIRouter(dependencies=[Depends(require_admin)])


@returns_router.post("/orders/{order_id}")
async def request_return(order_id: uuid.UUID, payload: ReturnRequestIn,
                         user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    data = await initiate_return(session, user_id, order_id, payload.reason)
    return success_response(data, status.HTTP_201_CREATED)


@returns_router.get("/orders/{order_id}")
async def return_for_order(order_id: uuid.UUID, user_id: int = Depends(current_user_id),
                           session: AsyncSession = Depends(get_session)):
    return success_response(await get_return_for_user_order(session, user_id, order_id))


@returns_router.get("")
async def my_returns(page: int = Query(DEFAULT_PAGE, ge=1),
                     limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                     user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    return success_response(await get_returns(session, page, limit, user_id=user_id))


# ------------------------------------------------------------------ admin

@returns_admin_router.get("/pending")
async def pending_returns(page: int = Query(DEFAULT_PAGE, ge=1),
                          limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                          session: AsyncSession = Depends(get_session)):
    return success_response(await get_returns(session, page, limit, pending_only=True))


@returns_admin_router.patch("/{return_id}")
async def decide_return(return_id: int, payload: ReturnDecisionIn, session: AsyncSession = Depends(get_session)):
    return success_response(await update_return_request(session, return_id, payload.approve))


@returns_admin_router.post("/{return_id}/refund")
async def refund_return(return_id: int, session: AsyncSession = Depends(get_session)):
    return success_response(await initiate_refund(session, return_id))


@returns_admin_router.post("/{return_id}/received")
async def received_by_seller(return_id: int, session: AsyncSession = Depends(get_session)):
    return success_response(await mark_order_returned_to_seller(session, return_id))
