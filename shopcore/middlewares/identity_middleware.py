from typing import Sequence
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from shopcore.auth.constants import USER_ID_HEADER, USER_ROLES_HEADER
from shopcore.common.utils import build_error, json_error
from shopcore.middlewares.constants import logger


class IdentityMiddleware(BaseHTTPMiddleware):
    """Copies the identity asserted by the auth gateway onto ``request.state``.

    Token checks happen upstream; requests without the header pass through
    anonymous and protected routes reject them in ``current_user_id``.
    """

    def __init__(self, app, *, skip_paths: Sequence[str] = ()):
        super().__init__(app)
        self.skip_paths = tuple(skip_paths)

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(self.skip_paths):
            return await call_next(request)

        raw_id = request.headers.get(USER_ID_HEADER)
        if raw_id is not None:
            try:
                request.state.user_identifier = int(raw_id)
            except ValueError:
                logger.warning("identity.invalid_header", extra={"path": request.url.path})
                payload = build_error(code="INVALID_AUTH", details={"message": "Malformed user identity"})
                return json_error(payload, status_code=status.HTTP_401_UNAUTHORIZED)

            roles = request.headers.get(USER_ROLES_HEADER, "")
            request.state.user_roles = [r.strip() for r in roles.split(",") if r.strip()]

        return await call_next(request)
