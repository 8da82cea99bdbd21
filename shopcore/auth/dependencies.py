from fastapi import HTTPException, Request, status
from shopcore.auth.constants import ADMIN_ROLE, logger


def current_user_id(request: Request) -> int:
    """Caller id resolved by the upstream auth layer."""
    user_id = getattr(request.state, "user_identifier", None)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    return user_id


def require_admin(request: Request) -> int:
    user_id = current_user_id(request)
    roles = getattr(request.state, "user_roles", None) or []
    if ADMIN_ROLE not in roles:
        logger.warning("auth.admin.denied", extra={"user_id": user_id, "path": request.url.path})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user_id
