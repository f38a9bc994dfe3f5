"""
Application error kinds and their HTTP mapping.

Services raise these; the handlers registered by ``register_exception_handlers``
turn them into ``{"success": false, "error": ..., "code": ...}`` responses.
Client-facing errors keep their detail, server faults are logged in full and
answered with a generic message.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "APP_ERROR"
    server_fault = False
    headers = None

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class TokenExpiredError(AppError):
    status_code = status.HTTP_410_GONE
    code = "TOKEN_EXPIRED"

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class AlreadyCompletedError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_COMPLETED"

    def __init__(self, detail: str = "This document has already been signed"):
        super().__init__(detail)


class InvalidStatusTransitionError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_TRANSITION"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class InvalidRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    headers = {"WWW-Authenticate": "Bearer"}


class AccessDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCESS_DENIED"


class CaseMismatchError(AccessDeniedError):
    """A document was requested through a case it does not belong to."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: str = "Document not found or access denied"):
        super().__init__(detail)


class StorageFailure(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_FAILURE"
    server_fault = True


class DecryptionFailure(StorageFailure):
    code = "DECRYPTION_FAILURE"


class UpstreamFailure(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_FAILURE"


GENERIC_SERVER_ERROR = "An internal error occurred. Please try again or contact support."


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.server_fault:
        logger.error(
            "%s on %s %s: %s",
            exc.code, request.method, request.url.path, exc.detail,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        detail = GENERIC_SERVER_ERROR
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": detail, "code": exc.code},
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{location}: {message}" if location else message
    logger.info("VALIDATION_ERROR on %s %s: %s", request.method, request.url.path, detail)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": detail, "code": InvalidRequestError.code},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": GENERIC_SERVER_ERROR, "code": "INTERNAL_ERROR"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
