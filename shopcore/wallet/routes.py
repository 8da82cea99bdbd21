from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from shopcore.auth.dependencies import current_user_id
from shopcore.common.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from shopcore.common.utils import success_response
from shopcore.db.dependencies import get_session
from shopcore.wallet.services import get_balance, get_transactions

wallet_router=APIRouter()


@wallet_router.get("")
async def wallet_balance(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    return success_response(await get_balance(session, user_id))


@wallet_router.get("/transactions")
async def wallet_transactions(page: int = Query(DEFAULT_PAGE, ge=1),
                              limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                              transaction_type: Optional[str] = None,
                              sort: Literal["created_at", "amount"] = "created_at",
                              order: Literal["asc", "desc"] = "desc",
                              user_id: int = Depends(current_user_id),
                              session: AsyncSession = Depends(get_session)):
    data = await get_transactions(session, user_id, page, limit, transaction_type, sort, order)
    return success_response(data)
