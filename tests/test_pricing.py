from datetime import timedelta
from decimal import Decimal
import pytest
from shopcore.common.errors import CouponError, CouponErrorCode
from shopcore.common.utils import now, to_minor_units
from shopcore.coupons.pricing import check_coupon_usable, compute_checkout_totals, compute_discount, price_with_coupon
from shopcore.schema.full_schema import Coupon


def test_totals_round_half_up():
    lines = [
        {"price": Decimal("33.335"), "quantity": 1},
        {"price": Decimal("10.10"), "quantity": 3},
    ]
    assert compute_checkout_totals(lines) == Decimal("63.64")


def test_discount_below_and_above_cap():
    assert compute_discount(Decimal("1000.00"), Decimal("12.5")) == (Decimal("125.00"), False)
    assert compute_discount(Decimal("20000.00"), Decimal("40"), cap=Decimal("5000")) == (Decimal("5000.00"), True)


def test_price_with_coupon_keeps_final_equal_total_minus_discount():
    priced = price_with_coupon(Decimal("999.99"), Decimal("15"))
    assert priced["discount_amount"] == Decimal("150.00")
    assert priced["final_amount"] == priced["total_amount"] - priced["discount_amount"]
    assert priced["message"] is None


def test_expiry_instant_counts_as_expired():
    at = now()
    coupon = Coupon(code="EDGE", discount_percentage=Decimal("5"), min_order_amount=Decimal("0"), expires_at=at)
    with pytest.raises(CouponError) as exc_info:
        check_coupon_usable(coupon, Decimal("100"), at)
    assert exc_info.value.code == CouponErrorCode.COUPON_EXPIRED

    assert check_coupon_usable(coupon, Decimal("100"), at - timedelta(seconds=1)) is coupon


def test_minor_units():
    assert to_minor_units(Decimal("1500")) == 150000
    assert to_minor_units(Decimal("10.005")) == 1001
