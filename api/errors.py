"""
HTTP mapping for checkout errors.

Failures always leave the API in the result shape
`{success: false, error, error_code, errors}`.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from domain.errors import CheckoutError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_BY_CODE: Dict[str, int] = {
    ErrorCode.VALIDATION.value: 400,
    ErrorCode.AUTH_REQUIRED.value: 401,
    ErrorCode.PAYMENT_FAILED.value: 402,
    ErrorCode.FORBIDDEN.value: 403,
    ErrorCode.EVENT_NOT_FOUND.value: 404,
    ErrorCode.ORDER_NOT_FOUND.value: 404,
    ErrorCode.EVENT_UNAVAILABLE.value: 409,
    ErrorCode.AVAILABILITY.value: 409,
    ErrorCode.INVALID_STATE.value: 409,
    ErrorCode.PERSISTENCE.value: 500,
    ErrorCode.INTERNAL.value: 500,
}


def status_for(error_code: Optional[str]) -> int:
    return STATUS_BY_CODE.get(error_code or "", 500)


def error_body(message: str, error_code: str, errors: Optional[list] = None) -> dict:
    return {
        "success": False,
        "error": message,
        "error_code": error_code,
        "errors": errors or [message],
    }


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    logger.info("%s %s -> %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_for(exc.code.value),
        content=error_body(exc.message, exc.code.value, exc.errors),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("Unexpected error. Please try again.", ErrorCode.INTERNAL.value),
    )
