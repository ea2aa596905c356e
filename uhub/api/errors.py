"""
HTTP mapping for service and store errors.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from uhub.domain.errors import (
    ErrorKind,
    OperationTimeoutError,
    ServiceError,
    StoreError,
    StoreFailureError,
    StoreTimeout,
    UHubError,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 5
UNPROCESSABLE = 422

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNKNOWN_ROLE: UNPROCESSABLE,
    ErrorKind.INVALID_EMAIL: UNPROCESSABLE,
    ErrorKind.INVALID_PASSWORD: UNPROCESSABLE,
    ErrorKind.INVALID_PROFILE: UNPROCESSABLE,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    # Expired tokens look the same as missing ones to the outside
    ErrorKind.EXPIRED: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_ACCEPTED: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.TOKEN_GENERATION_EXHAUSTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.PROVISIONING_INCONSISTENT: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.PROVISIONING_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.PARTIAL_FAILURE: status.HTTP_200_OK,
    ErrorKind.TIMEOUT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.STORE_FAILURE: status.HTTP_502_BAD_GATEWAY,
}


def error_body(error: ServiceError) -> dict[str, object]:
    return {
        "error": {
            "code": error.code,
            "message": error.message,
            "retryable": error.retryable,
            "details": error.details,
        }
    }


def error_response(exc: UHubError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    if status_code >= 500:
        logger.error("%s: %s", exc.kind.value, exc.message)
    return JSONResponse(
        status_code=status_code,
        content=error_body(ServiceError.from_exception(exc)),
        headers=headers,
    )


async def uhub_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, UHubError):
        raise exc
    return error_response(exc)


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Store errors that escaped a service (e.g. from auth lookups)
    if isinstance(exc, StoreTimeout):
        return error_response(OperationTimeoutError(exc.operation, exc.timeout))

    return error_response(StoreFailureError(request.url.path, exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UHubError, uhub_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
