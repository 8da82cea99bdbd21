import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shopcore.auth.dependencies import current_user_id
from shopcore.common.utils import success_response
from shopcore.config.settings import config_settings
from shopcore.db.dependencies import get_session
from shopcore.payments.gateway import RazorpayGateway, get_gateway
from shopcore.payments.models import RazorpayVerifyIn
from shopcore.payments.services import get_payment_for_order, verify_and_update_razorpay_payment

payments_router=APIRouter()


# client posts the handler payload razorpay checkout returns
@payments_router.post("/razorpay/verify")
async def verify_razorpay_payment(payload: RazorpayVerifyIn,
                                  user_id: int = Depends(current_user_id),
                                  session: AsyncSession = Depends(get_session),
                                  gateway: RazorpayGateway = Depends(get_gateway)):
    data = await verify_and_update_razorpay_payment(
        session, gateway, payload.razorpay_order_id, payload.razorpay_payment_id,
        payload.razorpay_signature, user_id=user_id,
    )
    return success_response(data)


@payments_router.get("/orders/{order_id}")
async def order_payment(order_id: uuid.UUID, user_id: int = Depends(current_user_id),
                        session: AsyncSession = Depends(get_session)):
    return success_response(await get_payment_for_order(session, user_id, order_id))


@payments_router.get("/razorpay/key")
async def razorpay_key(gateway: RazorpayGateway = Depends(get_gateway)):
    return success_response({"key_id": gateway.key_id, "currency": config_settings.CURRENCY})
