from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from shopcore.auth.dependencies import require_admin
from shopcore.common.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from shopcore.common.utils import success_response
from shopcore.coupons.models import CouponCreateIn, CouponUpdateIn
from shopcore.coupons.services import create_coupon, get_coupons, soft_delete_coupon, update_coupon
from shopcore.db.dependencies import get_session

coupons_admin_router=APIRouter(dependencies=[Depends(require_admin)])


@coupons_admin_router.post("")
async def add_coupon(payload: CouponCreateIn, session: AsyncSession = Depends(get_session)):
    coupon = await create_coupon(session, payload.code, payload.discount_percentage,
                                 payload.min_order_amount, payload.expires_on, payload.is_active)
    return success_response({"coupon": coupon}, status.HTTP_201_CREATED)


@coupons_admin_router.get("")
async def all_coupons(page: int = Query(DEFAULT_PAGE, ge=1),
                      limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
                      active_only: bool = False,
                      session: AsyncSession = Depends(get_session)):
    return success_response(await get_coupons(session, page, limit, active_only))


@coupons_admin_router.patch("/{coupon_id}")
async def edit_coupon(coupon_id: int, payload: CouponUpdateIn, session: AsyncSession = Depends(get_session)):
    coupon = await update_coupon(session, coupon_id, payload.model_dump(exclude_unset=True))
    return success_response({"coupon": coupon})


@coupons_admin_router.delete("/{coupon_id}")
async def delete_coupon(coupon_id: int, session: AsyncSession = Depends(get_session)):
    await soft_delete_coupon(session, coupon_id)
    return success_response({"deleted": coupon_id})
