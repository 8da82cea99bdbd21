import uuid
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from shopcore.auth.dependencies import current_user_id
from shopcore.checkout.models import ShippingAddressIn
from shopcore.checkout.services import get_or_create_session, get_summary, set_shipping_address
from shopcore.common.utils import success_response
from shopcore.coupons.models import ApplyCouponIn
from shopcore.coupons.services import apply_coupon, remove_coupon
from shopcore.db.dependencies import get_session

checkout_router=APIRouter()


# user clicks proceed to buy from the cart
@checkout_router.post("")
async def initiate_checkout(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    data = await get_or_create_session(session, user_id)
    return success_response(data, status.HTTP_201_CREATED)


@checkout_router.get("/{checkout_id}")
async def checkout_summary(checkout_id: uuid.UUID, user_id: int = Depends(current_user_id),
                           session: AsyncSession = Depends(get_session)):
    return success_response(await get_summary(session, user_id, checkout_id))


@checkout_router.put("/{checkout_id}/address")
async def choose_address(checkout_id: uuid.UUID, payload: ShippingAddressIn,
                         user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    data = await set_shipping_address(session, user_id, checkout_id, payload.address_id)
    return success_response(data)


@checkout_router.post("/{checkout_id}/coupon")
async def add_coupon(checkout_id: uuid.UUID, payload: ApplyCouponIn,
                     user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    data = await apply_coupon(session, user_id, checkout_id, payload.code)
    return success_response(data)


@checkout_router.delete("/{checkout_id}/coupon")
async def drop_coupon(checkout_id: uuid.UUID, user_id: int = Depends(current_user_id),
                      session: AsyncSession = Depends(get_session)):
    return success_response(await remove_coupon(session, user_id, checkout_id))
