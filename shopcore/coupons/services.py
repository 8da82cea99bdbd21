import re
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from shopcore.checkout.repository import get_checkout_items, get_shipping_address
from shopcore.checkout.services import clear_coupon, load_owned_checkout, refresh_from_cart, serialize_checkout
from shopcore.common.errors import CheckoutError, CheckoutErrorCode, CouponError, CouponErrorCode
from shopcore.common.utils import now, page_offset, to_money
from shopcore.coupons.constants import COUPON_CODE_PATTERN, logger
from shopcore.coupons.pricing import check_coupon_usable, price_with_coupon
from shopcore.coupons.repository import coupon_held_by_pending_checkout, get_coupon, get_coupon_by_code, list_coupons
from shopcore.db.utils import unit_of_work
from shopcore.schema.full_schema import CheckoutStatus, Coupon


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


# --------------------------------------------------------------------------------------- checkout side

async def apply_coupon(session, user_id: int, checkout_id: uuid.UUID, code: str) -> Dict[str, Any]:
    code = normalize_code(code)

    async with unit_of_work(session):
        cs = await load_owned_checkout(session, user_id, checkout_id, lock=True)
        if cs.status != CheckoutStatus.PENDING.value:
            raise CheckoutError(CheckoutErrorCode.CHECKOUT_COMPLETED)

        await refresh_from_cart(session, cs)
        if cs.item_count == 0:
            raise CheckoutError(CheckoutErrorCode.EMPTY_CHECKOUT)
        if cs.coupon_applied:
            raise CouponError(CouponErrorCode.COUPON_ALREADY_APPLIED, details={"coupon_code": cs.coupon_code})

        coupon = check_coupon_usable(await get_coupon_by_code(session, code), cs.total_amount, now())
        priced = price_with_coupon(cs.total_amount, coupon.discount_percentage)

        cs.coupon_code = coupon.code
        cs.coupon_applied = True
        cs.discount_amount = priced["discount_amount"]
        cs.final_amount = priced["final_amount"]
        cs.updated_at = now()
        await session.flush()

        items = await get_checkout_items(session, cs.id)
        address = await get_shipping_address(session, cs.shipping_address_id)
        data = serialize_checkout(cs, items, address)

    data["message"] = priced["message"]
    logger.info("coupon.apply", extra={
        "checkout_id": str(cs.public_id),
        "coupon_code": coupon.code,
        "discount": str(priced["discount_amount"]),
        "capped": priced["message"] is not None,
    })
    return data


async def remove_coupon(session, user_id: int, checkout_id: uuid.UUID) -> Dict[str, Any]:
    async with unit_of_work(session):
        cs = await load_owned_checkout(session, user_id, checkout_id, lock=True)
        if cs.status != CheckoutStatus.PENDING.value:
            raise CheckoutError(CheckoutErrorCode.CHECKOUT_COMPLETED)
        if not cs.coupon_applied:
            raise CouponError(CouponErrorCode.NO_COUPON_APPLIED)

        clear_coupon(cs)
        cs.updated_at = now()
        await session.flush()

        items = await get_checkout_items(session, cs.id)
        address = await get_shipping_address(session, cs.shipping_address_id)
        data = serialize_checkout(cs, items, address)

    return data


# --------------------------------------------------------------------------------------- admin side

def _validate_terms(discount_percentage: Optional[Decimal], min_order_amount: Optional[Decimal]) -> None:
    if discount_percentage is not None and not (Decimal("0") < Decimal(discount_percentage) <= Decimal("100")):
        raise CouponError(CouponErrorCode.INVALID_DISCOUNT_PERCENTAGE)
    if min_order_amount is not None and Decimal(min_order_amount) < 0:
        raise CouponError(CouponErrorCode.INVALID_MIN_ORDER_AMOUNT)


def _expiry_from_date(expires_on: Optional[date]) -> Optional[datetime]:
    if expires_on is None:
        return None
    if expires_on < now().date():
        raise CouponError(CouponErrorCode.INVALID_EXPIRY_DATE)
    # valid through the whole of that day
    return datetime.combine(expires_on, time(23, 59, 59), tzinfo=timezone.utc)


def serialize_coupon(c: Coupon) -> Dict[str, Any]:
    return {
        "id": c.id,
        "code": c.code,
        "discount_percentage": c.discount_percentage,
        "min_order_amount": to_money(c.min_order_amount),
        "is_active": c.is_active,
        "expires_at": c.expires_at,
        "created_at": c.created_at,
    }


async def create_coupon(session, code: str, discount_percentage: Decimal, min_order_amount: Decimal = Decimal("0"),
                        expires_on: Optional[date] = None, is_active: bool = True) -> Dict[str, Any]:
    code = normalize_code(code)
    if not re.match(COUPON_CODE_PATTERN, code):
        raise CouponError(CouponErrorCode.INVALID_COUPON_CODE, message="code must be 3-20 chars of A-Z, 0-9, _ or -")
    _validate_terms(discount_percentage, min_order_amount)
    expires_at = _expiry_from_date(expires_on)

    async with unit_of_work(session):
        if await get_coupon_by_code(session, code) is not None:
            raise CouponError(CouponErrorCode.DUPLICATE_COUPON_CODE)
        coupon = Coupon(
            code=code,
            discount_percentage=Decimal(discount_percentage),
            min_order_amount=to_money(min_order_amount),
            is_active=is_active,
            expires_at=expires_at,
        )
        session.add(coupon)
        await session.flush()
        data = serialize_coupon(coupon)

    logger.info("coupon.create", extra={"coupon_code": code})
    return data


async def get_coupons(session, page: int, limit: int, active_only: bool = False) -> Dict[str, Any]:
    coupons, total = await list_coupons(session, page_offset(page, limit), limit, active_only)
    return {
        "coupons": [serialize_coupon(c) for c in coupons],
        "page": page,
        "limit": limit,
        "total": total,
    }


async def _live_coupon(session, coupon_id: int) -> Coupon:
    coupon = await get_coupon(session, coupon_id)
    if coupon is None:
        raise CouponError(CouponErrorCode.COUPON_NOT_FOUND)
    if coupon.is_deleted:
        raise CouponError(CouponErrorCode.COUPON_ALREADY_DELETED)
    return coupon


async def update_coupon(session, coupon_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
    _validate_terms(changes.get("discount_percentage"), changes.get("min_order_amount"))

    async with unit_of_work(session):
        coupon = await _live_coupon(session, coupon_id)

        if changes.get("discount_percentage") is not None:
            coupon.discount_percentage = Decimal(changes["discount_percentage"])
        if changes.get("min_order_amount") is not None:
            coupon.min_order_amount = to_money(changes["min_order_amount"])
        if changes.get("is_active") is not None:
            coupon.is_active = bool(changes["is_active"])
        if "expires_on" in changes:
            coupon.expires_at = _expiry_from_date(changes["expires_on"])
        coupon.updated_at = now()
        await session.flush()
        data = serialize_coupon(coupon)

    return data


async def soft_delete_coupon(session, coupon_id: int) -> None:
    async with unit_of_work(session):
        coupon = await _live_coupon(session, coupon_id)
        if await coupon_held_by_pending_checkout(session, coupon.code):
            raise CouponError(CouponErrorCode.COUPON_IN_USE)
        coupon.is_deleted = True
        coupon.is_active = False
        coupon.deleted_at = now()

    logger.info("coupon.delete", extra={"coupon_id": coupon_id})
