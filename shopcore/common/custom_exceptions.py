from fastapi import FastAPI, HTTPException, Request,status
from fastapi.exceptions import RequestValidationError
from shopcore.common.errors import DomainError, ErrorCategory, PaymentErrorCode
from shopcore.common.logging_setup import get_logger
from shopcore.common.utils import build_error, json_error
from shopcore.common.constants import request_id_ctx

logger = get_logger("shopcore.errors")

CATEGORY_STATUS = {
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorCategory.STATE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.RESOURCE_EXHAUSTION: status.HTTP_409_CONFLICT,
    ErrorCategory.EXTERNAL_DEPENDENCY: status.HTTP_502_BAD_GATEWAY,
}

# a forged callback is the caller's fault, not the gateway's
STATUS_OVERRIDES = {
    PaymentErrorCode.INVALID_SIGNATURE: status.HTTP_400_BAD_REQUEST,
}


async def domain_error_handler(request: Request, exc: DomainError):
    rid = request_id_ctx.get(None)
    status_code = STATUS_OVERRIDES.get(exc.code, CATEGORY_STATUS[exc.category])

    log = logger.warning if exc.category == ErrorCategory.EXTERNAL_DEPENDENCY else logger.info
    log(
        "domain.error",
        extra={
            "code": exc.code.value,
            "category": exc.category.value,
            "path": request.url.path,
            "method": request.method,
        },
    )

    details = {"message": exc.message, **exc.details}
    payload = build_error(code=exc.code.value, details=details, request_id=rid)
    return json_error(payload, status_code=status_code)


async def fallback_handler(request: Request, exc: Exception):

    rid = request_id_ctx.get(None)

    logger.error(
        "unexpected.exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc,
    )

    payload = build_error(code="SERVER_ERROR", details={"message": "Internal Server Error"}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = request_id_ctx.get(None)
    logger.warning(
        "request.validation_failed",
        extra={
            "errors": exc.errors(),
            "path": request.url.path,
        },
    )

    payload = build_error(code="UNPROCESSABLE_ENTITY", details={"message":"invalid request"}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def http_exception_handler(request: Request, exc: HTTPException):

    rid = request_id_ctx.get(None)

    payload = build_error(code=f"HTTP_{exc.status_code}", details={"message":exc.detail}, request_id=rid)
    return json_error(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def register_all_exceptions(app: FastAPI):

    app.add_exception_handler(
        Exception, # anything that escaped the typed handlers below
        fallback_handler
    )

    app.add_exception_handler(
        DomainError,
        domain_error_handler
    )

    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler
    )

    app.add_exception_handler(
        HTTPException,
        http_exception_handler
    )
