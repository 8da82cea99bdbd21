import uuid
from typing import Any, Dict, List, Optional
from shopcore.cart.repository import count_cart_lines, get_cart_lines
from shopcore.checkout.constants import logger
from shopcore.checkout.repository import (get_address, get_checkout_by_public_id, get_checkout_items,
                                          get_or_create_pending_checkout, get_shipping_address,
                                          replace_checkout_items, resolve_shipping_snapshot)
from shopcore.common.errors import CheckoutError, CheckoutErrorCode
from shopcore.common.utils import now, to_money
from shopcore.coupons.pricing import compute_checkout_totals
from shopcore.db.utils import unit_of_work
from shopcore.inventory.repository import validate_stock
from shopcore.schema.full_schema import ZERO, CheckoutSession, CheckoutStatus, ShippingAddress


def priced_lines(cart_lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "product_id": ln["product_id"],
            "quantity": ln["quantity"],
            "price": to_money(ln["price"]),
            "subtotal": to_money(to_money(ln["price"]) * ln["quantity"]),
        }
        for ln in cart_lines
    ]


def snapshot_differs(snapshot: List[Dict[str, Any]], cart_lines: List[Dict[str, Any]]) -> bool:
    """True when the checkout snapshot no longer mirrors the live cart (lines, quantities or prices)."""
    def key(lines):
        return {ln["product_id"]: (int(ln["quantity"]), to_money(ln["price"])) for ln in lines}
    return key(snapshot) != key(cart_lines)


def clear_coupon(cs: CheckoutSession) -> None:
    cs.coupon_code = None
    cs.coupon_applied = False
    cs.discount_amount = ZERO
    cs.final_amount = to_money(cs.total_amount)


async def refresh_from_cart(session, cs: CheckoutSession,
                            cart_lines: Optional[List[Dict[str, Any]]] = None) -> bool:
    """Re-sync the session with the live cart.

    When anything changed the snapshot and totals are rewritten and a coupon
    applied earlier is dropped. Returns whether a rewrite happened. Does not commit.
    """
    if cart_lines is None:
        cart_lines = await get_cart_lines(session, cs.user_id)
    snapshot = await get_checkout_items(session, cs.id)

    if not snapshot_differs(snapshot, cart_lines) and cs.item_count == len(cart_lines):
        return False

    lines = priced_lines(cart_lines)
    await replace_checkout_items(session, cs.id, lines)

    had_coupon = cs.coupon_applied
    cs.total_amount = compute_checkout_totals(lines)
    cs.item_count = len(lines)
    clear_coupon(cs)
    cs.updated_at = now()
    await session.flush()

    logger.info("checkout.refresh", extra={
        "checkout_id": str(cs.public_id),
        "item_count": cs.item_count,
        "coupon_cleared": had_coupon,
    })
    return True


async def load_owned_checkout(session, user_id: int, checkout_id: uuid.UUID, lock: bool = False) -> CheckoutSession:
    cs = await get_checkout_by_public_id(session, checkout_id, lock=lock)
    if cs is None:
        raise CheckoutError(CheckoutErrorCode.CHECKOUT_NOT_FOUND)
    if cs.user_id != user_id:
        raise CheckoutError(CheckoutErrorCode.UNAUTHORIZED)
    return cs


def serialize_checkout(cs: CheckoutSession, items: List[Dict[str, Any]],
                       address: Optional[ShippingAddress] = None) -> Dict[str, Any]:
    data = {
        "checkout_id": str(cs.public_id),
        "status": cs.status,
        "total_amount": to_money(cs.total_amount),
        "discount_amount": to_money(cs.discount_amount),
        "final_amount": to_money(cs.final_amount),
        "item_count": cs.item_count,
        "coupon_code": cs.coupon_code,
        "coupon_applied": cs.coupon_applied,
        "shipping_address_id": cs.shipping_address_id,
        "items": items,
    }
    if address is not None:
        data["shipping_address"] = {
            "id": address.id,
            "name": address.name,
            "line1": address.line1,
            "line2": address.line2,
            "city": address.city,
            "state": address.state,
            "landmark": address.landmark,
            "postal_code": address.postal_code,
            "country": address.country,
            "phone": address.phone,
        }
    return data


async def get_or_create_session(session, user_id: int) -> Dict[str, Any]:
    async with unit_of_work(session):
        cart_lines = await get_cart_lines(session, user_id)
        if not cart_lines:
            raise CheckoutError(CheckoutErrorCode.EMPTY_CART)
        await validate_stock(session, cart_lines)

        cs = await get_or_create_pending_checkout(session, user_id)
        await refresh_from_cart(session, cs, cart_lines)

        items = await get_checkout_items(session, cs.id)
        address = await get_shipping_address(session, cs.shipping_address_id)
        data = serialize_checkout(cs, items, address)

    return data


async def set_shipping_address(session, user_id: int, checkout_id: uuid.UUID, address_id: int) -> Dict[str, Any]:
    async with unit_of_work(session):
        cs = await load_owned_checkout(session, user_id, checkout_id, lock=True)
        if cs.status != CheckoutStatus.PENDING.value:
            raise CheckoutError(CheckoutErrorCode.INVALID_CHECKOUT_STATE)

        address = await get_address(session, address_id)
        if address is None:
            raise CheckoutError(CheckoutErrorCode.ADDRESS_NOT_FOUND)
        if address.user_id != user_id:
            raise CheckoutError(CheckoutErrorCode.ADDRESS_NOT_BELONG_TO_USER)

        snapshot = await resolve_shipping_snapshot(session, address)
        cs.shipping_address_id = snapshot.id
        cs.updated_at = now()
        await session.flush()

        items = await get_checkout_items(session, cs.id)
        data = serialize_checkout(cs, items, snapshot)

    return data


async def get_summary(session, user_id: int, checkout_id: uuid.UUID) -> Dict[str, Any]:
    cs = await load_owned_checkout(session, user_id, checkout_id)

    if cs.status == CheckoutStatus.PENDING.value:
        live_count = await count_cart_lines(session, user_id)
        if live_count != cs.item_count:
            raise CheckoutError(
                CheckoutErrorCode.CART_UPDATED_AFTER_CREATING_CHECKOUT_SESSION,
                details={"item_count": cs.item_count, "cart_item_count": live_count},
            )
        items = await get_checkout_items(session, cs.id)
        await validate_stock(session, items)
    else:
        items = await get_checkout_items(session, cs.id)

    address = await get_shipping_address(session, cs.shipping_address_id)
    return serialize_checkout(cs, items, address)
