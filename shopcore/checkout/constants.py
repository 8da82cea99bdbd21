from shopcore.common.logging_setup import get_logger

logger = get_logger("shopcore.checkout")
