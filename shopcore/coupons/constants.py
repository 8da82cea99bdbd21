from shopcore.common.logging_setup import get_logger

logger = get_logger("shopcore.coupons")

COUPON_CODE_PATTERN = r"^[A-Z0-9_-]{3,20}$"

MAX_DISCOUNT_CAP_MESSAGE = "Maximum discount cap applied"
