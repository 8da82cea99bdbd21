from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shopcore.auth.dependencies import current_user_id
from shopcore.cart.models import CartItemInput, CartItemUpdate
from shopcore.cart.services import add_to_cart, empty_cart, get_cart, remove_cart_item, update_cart_item
from shopcore.common.utils import success_response
from shopcore.db.dependencies import get_session

carts_router=APIRouter()


@carts_router.get("")
async def view_cart(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    cart = await get_cart(session, user_id)
    return success_response(cart)


@carts_router.post("/items")
async def add_item(payload: CartItemInput, user_id: int = Depends(current_user_id),
                   session: AsyncSession = Depends(get_session)):
    res = await add_to_cart(session, user_id, payload.product_id, payload.quantity)
    status_code = status.HTTP_201_CREATED if res["created"] else status.HTTP_200_OK
    return success_response(res, status_code)


@carts_router.patch("/items/{item_id}")
async def update_item(item_id: int, payload: CartItemUpdate, user_id: int = Depends(current_user_id),
                      session: AsyncSession = Depends(get_session)):
    item = await update_cart_item(session, user_id, item_id, payload.quantity)
    return success_response({"item": item})


@carts_router.delete("/items/{item_id}")
async def delete_item(item_id: int, user_id: int = Depends(current_user_id),
                      session: AsyncSession = Depends(get_session)):
    await remove_cart_item(session, user_id, item_id)
    return success_response({"removed": item_id})


@carts_router.delete("")
async def clear(user_id: int = Depends(current_user_id), session: AsyncSession = Depends(get_session)):
    removed = await empty_cart(session, user_id)
    return success_response({"removed_items": removed})
