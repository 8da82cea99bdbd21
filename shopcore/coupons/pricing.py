from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple
from shopcore.common.errors import CouponError, CouponErrorCode
from shopcore.common.utils import as_utc, to_money
from shopcore.config.settings import config_settings
from shopcore.coupons.constants import MAX_DISCOUNT_CAP_MESSAGE
from shopcore.schema.full_schema import Coupon

HUNDRED = Decimal("100")


def compute_checkout_totals(lines: Iterable[Dict[str, Any]]) -> Decimal:
    total = sum((to_money(ln["price"]) * int(ln["quantity"]) for ln in lines), Decimal("0"))
    return to_money(total)


def compute_discount(total: Decimal, percentage: Decimal,
                     cap: Optional[Decimal] = None) -> Tuple[Decimal, bool]:
    """Percentage discount on ``total``; returns (discount, capped)."""
    cap = to_money(config_settings.MAX_DISCOUNT_AMOUNT if cap is None else cap)
    discount = to_money(to_money(total) * Decimal(percentage) / HUNDRED)
    if discount > cap:
        return cap, True
    return discount, False


def check_coupon_usable(coupon: Optional[Coupon], total: Decimal, at: datetime) -> Coupon:
    if coupon is None or coupon.is_deleted:
        raise CouponError(CouponErrorCode.INVALID_COUPON_CODE)
    if not coupon.is_active:
        raise CouponError(CouponErrorCode.COUPON_INACTIVE)
    expires_at = as_utc(coupon.expires_at)
    if expires_at is not None and expires_at <= at:
        raise CouponError(CouponErrorCode.COUPON_EXPIRED)
    if to_money(total) < to_money(coupon.min_order_amount):
        raise CouponError(
            CouponErrorCode.ORDER_TOTAL_BELOW_MINIMUM,
            details={"min_order_amount": str(to_money(coupon.min_order_amount))},
        )
    return coupon


def price_with_coupon(total: Decimal, percentage: Decimal) -> Dict[str, Any]:
    discount, capped = compute_discount(total, percentage)
    return {
        "total_amount": to_money(total),
        "discount_amount": discount,
        "final_amount": to_money(to_money(total) - discount),
        "message": MAX_DISCOUNT_CAP_MESSAGE if capped else None,
    }
