from typing import Any, Dict
from shopcore.cart.constants import logger
from shopcore.cart.repository import clear_cart, delete_cart_item, get_cart_item, get_cart_item_by_product, get_cart_lines
from shopcore.common.errors import CartError, CartErrorCode
from shopcore.common.utils import now, to_money
from shopcore.config.settings import config_settings
from shopcore.db.utils import unit_of_work
from shopcore.inventory.repository import load_products
from shopcore.schema.full_schema import CartItem


def _check_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise CartError(CartErrorCode.INVALID_QUANTITY)
    if quantity > config_settings.MAX_CART_ITEM_QUANTITY:
        raise CartError(
            CartErrorCode.EXCEEDS_MAX_QUANTITY,
            details={"max_quantity": config_settings.MAX_CART_ITEM_QUANTITY},
        )


async def _live_product(session, product_id: int) -> Dict[str, Any]:
    products = await load_products(session, [product_id])
    product = products.get(product_id)
    if product is None or product["deleted_at"] is not None:
        raise CartError(CartErrorCode.PRODUCT_NOT_FOUND)
    return product


def _check_stock(product: Dict[str, Any], quantity: int) -> None:
    if quantity > product["stock_qty"]:
        raise CartError(
            CartErrorCode.INSUFFICIENT_STOCK,
            details={"product_id": product["id"], "requested": quantity, "available": product["stock_qty"]},
        )


def _serialize_item(item: CartItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "quantity": item.quantity,
        "price": item.price,
        "subtotal": item.subtotal,
    }


async def add_to_cart(session, user_id: int, product_id: int, quantity: int = 1) -> Dict[str, Any]:
    if quantity <= 0:
        raise CartError(CartErrorCode.INVALID_QUANTITY)

    async with unit_of_work(session):
        product = await _live_product(session, product_id)
        item = await get_cart_item_by_product(session, user_id, product_id)

        new_qty = quantity + (item.quantity if item else 0)
        _check_quantity(new_qty)
        _check_stock(product, new_qty)

        created = item is None
        if created:
            item = CartItem(user_id=user_id, product_id=product_id)
            session.add(item)
        item.quantity = new_qty
        item.price = to_money(product["price"])
        item.subtotal = to_money(item.price * new_qty)
        item.updated_at = now()
        await session.flush()
        data = {"item": _serialize_item(item), "created": created}

    logger.info("cart.add", extra={"user_id": user_id, "product_id": product_id, "quantity": new_qty})
    return data


async def _owned_item(session, user_id: int, item_id: int) -> CartItem:
    item = await get_cart_item(session, item_id)
    if item is None:
        raise CartError(CartErrorCode.CART_ITEM_NOT_FOUND)
    if item.user_id != user_id:
        raise CartError(CartErrorCode.UNAUTHORIZED)
    return item


async def update_cart_item(session, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
    _check_quantity(quantity)

    async with unit_of_work(session):
        item = await _owned_item(session, user_id, item_id)
        product = await _live_product(session, item.product_id)
        _check_stock(product, quantity)

        item.quantity = quantity
        item.price = to_money(product["price"])
        item.subtotal = to_money(item.price * quantity)
        item.updated_at = now()
        await session.flush()
        data = _serialize_item(item)

    return data


async def remove_cart_item(session, user_id: int, item_id: int) -> None:
    async with unit_of_work(session):
        await _owned_item(session, user_id, item_id)
        await delete_cart_item(session, item_id)


async def empty_cart(session, user_id: int) -> int:
    async with unit_of_work(session):
        removed = await clear_cart(session, user_id)
    return removed


async def get_cart(session, user_id: int) -> Dict[str, Any]:
    lines = await get_cart_lines(session, user_id)
    total = to_money(sum((ln["subtotal"] for ln in lines if ln["is_available"]), 0))
    return {
        "items": lines,
        "item_count": len(lines),
        "total_amount": total,
    }
