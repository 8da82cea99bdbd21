from shopcore.common.logging_setup import get_logger

logger = get_logger("shopcore.returns")

MAX_RETURN_REASON_LENGTH = 500
