from shopcore.common.logging_setup import get_logger

logger = get_logger("shopcore.auth")

ADMIN_ROLE = "admin"

# set by the auth gateway in front of this service
USER_ID_HEADER = "X-User-Id"
USER_ROLES_HEADER = "X-User-Roles"
